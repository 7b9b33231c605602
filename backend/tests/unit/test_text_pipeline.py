"""Unit tests for the text embedding pipeline"""

import threading

import pytest
from sqlalchemy import select

from config import settings
from domain.ai.ports import EmbeddingAuthError, EmbeddingResult
from fakes import FakeTextProvider, axis_vector, TEXT_DIM
from models import ProductTextEmbedding
from services.embedding import ProductNotFoundError
from services.embedding.text_pipeline import TextEmbeddingPipeline, clamp_page_size
from services.embedding.text_generator import calculate_text_hash


def stored_rows(db, owner_id):
    return db.execute(
        select(ProductTextEmbedding).where(ProductTextEmbedding.owner_id == owner_id)
    ).scalars().all()


class TestClampPageSize:
    def test_default(self):
        assert clamp_page_size(None) == 200

    def test_bounds(self):
        assert clamp_page_size(10) == 50
        assert clamp_page_size(50) == 50
        assert clamp_page_size(320) == 320
        assert clamp_page_size(10_000) == 500


class TestTextEmbeddingPipeline:
    """Test TextEmbeddingPipeline.generate"""

    def test_embeds_active_products(self, db_session, make_product, owner_id, text_provider, no_sleep):
        make_product(owner_id, "Trail Runner", description="Running shoe", category="Footwear", price=80, stock=5)
        make_product(owner_id, "Desk Lamp", price=20, stock=2)
        make_product(owner_id, "Retired", is_active=False)

        run = TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep).generate(owner_id)

        assert run.processed_count == 2
        assert run.fetched_count == 2
        assert run.total_products == 2
        assert run.has_more is False
        assert run.next_offset == 2
        assert sorted(r.product_name for r in stored_rows(db_session, owner_id)) == ["Desk Lamp", "Trail Runner"]

    def test_row_contents(self, db_session, make_product, owner_id, text_provider, no_sleep):
        product = make_product(
            owner_id,
            "Tee",
            description="Cotton tee",
            category="Apparel",
            price=15,
            stock=99,
            images=["https://cdn/a.jpg", {"url": "https://cdn/b.jpg"}],
            variants=[
                {"title": "Small", "price": 15, "inventory_quantity": 3},
                {"title": "Large", "price": 17, "inventory_quantity": 4, "available": False},
            ],
        )

        TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep).generate(owner_id)

        (row,) = stored_rows(db_session, owner_id)
        assert row.product_id == product.id
        assert row.stock == 7
        assert float(row.price) == 15.0
        assert row.category == "Apparel"
        assert row.embedding_model == "fake-text-embedding"
        assert len(row.embedding) == TEXT_DIM
        assert [v["title"] for v in row.variants] == ["Small", "Large"]
        assert row.variants[1]["stock"] == 4
        assert row.variants[1]["available"] is False
        assert len(row.images) == 2

        snapshot = text_provider.calls[0]
        assert "Variants: Small: 15.00 (stock: 3), Large: 17.00 (stock: 4)" in snapshot
        assert snapshot.endswith("2 image(s) available.")
        assert row.metadata_json["text_hash"] == calculate_text_hash(snapshot)
        assert row.metadata_json["description_length"] == len("Cotton tee")
        assert row.metadata_json["images_count"] == 2
        assert "processed_at" in row.metadata_json

    def test_stock_without_variants_is_base_stock(self, db_session, make_product, owner_id, text_provider, no_sleep):
        make_product(owner_id, "Mug", stock=11)
        TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep).generate(owner_id)
        assert stored_rows(db_session, owner_id)[0].stock == 11

    def test_regeneration_is_idempotent(self, db_session, make_product, owner_id, text_provider, no_sleep):
        for index in range(4):
            make_product(owner_id, f"Product {index}")
        pipeline = TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep)

        pipeline.generate(owner_id, reset=True)
        pipeline.generate(owner_id, reset=True)

        rows = stored_rows(db_session, owner_id)
        assert len(rows) == 4
        assert len({row.product_id for row in rows}) == 4

    def test_partial_failure_isolated(self, db_session, make_product, owner_id, no_sleep):
        for name in ["Alpha", "Bravo", "Charlie", "Delta", "Echo"]:
            make_product(owner_id, name)
        provider = FakeTextProvider(fail_on=["Charlie"])

        run = TextEmbeddingPipeline(db_session, provider, sleep=no_sleep).generate(owner_id)

        assert run.processed_count == 4
        assert run.fetched_count == 5
        names = {r.product_name for r in stored_rows(db_session, owner_id)}
        assert names == {"Alpha", "Bravo", "Delta", "Echo"}

    def test_wrong_dimension_skipped(self, db_session, make_product, owner_id, no_sleep):
        make_product(owner_id, "Good")
        make_product(owner_id, "Short")
        provider = FakeTextProvider(vectors={"Short": [1.0, 0.0, 0.0]})

        run = TextEmbeddingPipeline(db_session, provider, sleep=no_sleep).generate(owner_id)

        assert run.processed_count == 1
        assert [r.product_name for r in stored_rows(db_session, owner_id)] == ["Good"]

    def test_configuration_error_is_fatal(self, db_session, make_product, owner_id, no_sleep):
        make_product(owner_id, "Alpha")
        make_product(owner_id, "Bravo")
        provider = FakeTextProvider(fail_on=["Bravo"], error=EmbeddingAuthError)

        with pytest.raises(EmbeddingAuthError):
            TextEmbeddingPipeline(db_session, provider, sleep=no_sleep).generate(owner_id)

    def test_pauses_between_sub_batches_only(self, db_session, make_product, owner_id, text_provider, no_sleep):
        for index in range(12):
            make_product(owner_id, f"Product {index}")

        TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep).generate(owner_id)

        # 12 products in sub-batches of 5 -> 3 sub-batches, 2 pauses
        assert no_sleep.calls == [settings.EMBEDDING_BATCH_PAUSE_SECONDS] * 2

    def test_sub_batch_embeds_concurrently(self, db_session, make_product, owner_id, no_sleep):
        for index in range(5):
            make_product(owner_id, f"Product {index}")
        barrier = threading.Barrier(5, timeout=5)

        class BarrierProvider(FakeTextProvider):
            def embed_text(self, text: str) -> EmbeddingResult:
                barrier.wait()
                return super().embed_text(text)

        run = TextEmbeddingPipeline(db_session, BarrierProvider(), sleep=no_sleep).generate(owner_id)
        assert run.processed_count == 5


class TestTextPipelinePaging:
    """Caller-driven pagination and pre-clear rules"""

    def test_pages_until_exhausted(self, db_session, make_product, owner_id, text_provider, no_sleep):
        for index in range(60):
            make_product(owner_id, f"Product {index:02d}")
        pipeline = TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep)

        first = pipeline.generate(owner_id, page_size=50)
        assert (first.fetched_count, first.has_more, first.next_offset) == (50, True, 50)

        second = pipeline.generate(owner_id, offset=first.next_offset, page_size=50)
        assert (second.fetched_count, second.has_more, second.next_offset) == (10, False, 60)

        # Continuation pages append instead of clearing
        assert len(stored_rows(db_session, owner_id)) == 60

    def test_small_page_size_clamped(self, db_session, make_product, owner_id, text_provider, no_sleep):
        for index in range(3):
            make_product(owner_id, f"Product {index}")

        run = TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep).generate(owner_id, page_size=1)
        assert run.fetched_count == 3

    def test_reset_on_later_page_clears_owner(
        self, db_session, make_product, owner_id, text_provider, no_sleep, monkeypatch
    ):
        monkeypatch.setattr(settings, "EMBEDDING_PAGE_SIZE_MIN", 1)
        for index in range(4):
            make_product(owner_id, f"Product {index}")
        pipeline = TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep)
        pipeline.generate(owner_id, page_size=2)
        assert len(stored_rows(db_session, owner_id)) == 2

        pipeline.generate(owner_id, offset=2, page_size=2, reset=True)

        assert sorted(r.product_name for r in stored_rows(db_session, owner_id)) == ["Product 2", "Product 3"]

    def test_insert_failure_discards_only_its_sub_batch(
        self, db_session, make_product, owner_id, text_provider, no_sleep, monkeypatch
    ):
        monkeypatch.setattr(settings, "EMBEDDING_PAGE_SIZE_MIN", 1)
        products = [make_product(owner_id, f"Product {index}") for index in range(6)]
        pipeline = TextEmbeddingPipeline(db_session, text_provider, batch_size=2, sleep=no_sleep)
        pipeline.generate(owner_id, page_size=3)

        # Row already present for Product 4 makes its sub-batch violate the unique index
        db_session.add(ProductTextEmbedding(
            owner_id=owner_id,
            product_id=products[4].id,
            product_name="Product 4",
            embedding=axis_vector(TEXT_DIM, 1.0),
            embedding_model="fake-text-embedding",
        ))
        db_session.commit()

        run = pipeline.generate(owner_id, offset=3, page_size=3)

        # Sub-batches: [3, 4] rejected, [5] stored
        assert run.processed_count == 1
        names = sorted(r.product_name for r in stored_rows(db_session, owner_id))
        assert names == ["Product 0", "Product 1", "Product 2", "Product 4", "Product 5"]

    def test_other_owner_untouched(self, db_session, make_product, owner_id, text_provider, no_sleep):
        from uuid import uuid4

        other = uuid4()
        make_product(other, "Theirs")
        make_product(owner_id, "Mine")
        pipeline = TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep)
        pipeline.generate(other)

        pipeline.generate(owner_id, reset=True)

        assert [r.product_name for r in stored_rows(db_session, other)] == ["Theirs"]


class TestSingleProductScope:
    """product_id scope ignores paging"""

    def test_replaces_only_that_product(self, db_session, make_product, owner_id, text_provider, no_sleep):
        target = make_product(owner_id, "Target", description="old")
        make_product(owner_id, "Bystander")
        pipeline = TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep)
        pipeline.generate(owner_id)

        target.description = "new description"
        db_session.commit()
        run = pipeline.generate(owner_id, product_id=target.id, offset=7)

        assert run.processed_count == 1
        assert run.fetched_count == 1
        assert run.has_more is False
        assert run.next_offset == 7
        rows = {r.product_name: r for r in stored_rows(db_session, owner_id)}
        assert set(rows) == {"Target", "Bystander"}
        assert rows["Target"].product_description == "new description"

    def test_unknown_product(self, db_session, owner_id, text_provider, no_sleep):
        from uuid import uuid4

        with pytest.raises(ProductNotFoundError):
            TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep).generate(owner_id, product_id=uuid4())

    def test_negative_offset(self, db_session, owner_id, text_provider, no_sleep):
        with pytest.raises(ValueError):
            TextEmbeddingPipeline(db_session, text_provider, sleep=no_sleep).generate(owner_id, offset=-1)
