"""Service-level errors raised by the embedding pipelines and search services."""

from uuid import UUID


class ProductNotFoundError(Exception):
    """Product does not exist or belongs to another owner"""

    def __init__(self, product_id: UUID):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class SearchError(Exception):
    """Similarity search could not be performed"""
    pass


class SearchValidationError(SearchError, ValueError):
    """Search request is malformed (blank query, missing or ambiguous image source, bad limit)"""
    pass
