"""Unit tests for the exposed operations and their response envelopes"""

import base64
from uuid import uuid4

import httpx
import pytest

from auth.roles import OwnerAuthorizationError, Requester, UserRole
from config import settings
from domain.ai.ports import EmbeddingServiceError
from fakes import FakeImageProvider, FakeTextProvider, axis_vector, TEXT_DIM, IMAGE_DIM
from infrastructure.images import HttpImageFetcher
from services.embedding import (
    bulk_generate_image_embeddings,
    embedding_stats,
    generate_image_embeddings,
    generate_text_embeddings,
    search_by_image,
    search_by_text,
)


class TestThreeProductScenario:
    """Generate a small catalog, then search it by text"""

    def test_generate_then_search(self, db_session, make_product, merchant, no_sleep):
        owner = merchant.user_id
        make_product(owner, "Blue Running Shoes", description="Breathable mesh", category="Footwear", price=89)
        make_product(owner, "Navy Sneaker", category="Footwear", price=60)
        make_product(owner, "Desk Lamp", description="LED lamp", category="Home", price=25)
        provider = FakeTextProvider(vectors={
            "Blue Running Shoes": axis_vector(TEXT_DIM, 1.0, 0.2),
            "Navy Sneaker": axis_vector(TEXT_DIM, 1.0, 0.9),
            "Desk Lamp": axis_vector(TEXT_DIM, 0.0, 1.0),
            "blue shoes": axis_vector(TEXT_DIM, 1.0, 0.0),
        })

        generated = generate_text_embeddings(db_session, merchant, page_size=50, provider=provider, sleep=no_sleep)

        assert generated.success is True
        assert generated.processed_count == 3
        assert generated.has_more is False
        assert generated.next_offset == 3
        assert generated.total_products == 3

        found = search_by_text(db_session, merchant, "blue shoes", threshold=0.6, provider=provider)

        assert found.success is True
        assert found.search_type == "text"
        assert [r.product_name for r in found.results] == ["Blue Running Shoes", "Navy Sneaker"]
        assert found.count == 2
        assert all(r.similarity >= 0.6 for r in found.results)
        assert found.results[0].similarity >= found.results[1].similarity
        assert found.results[0].category == "Footwear"


class TestTextOperations:
    """Envelope behaviour of text generation and text search"""

    def test_missing_credentials_fail_before_database_work(self, db_session, merchant, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)

        response = generate_text_embeddings(db_session, merchant)

        assert response.success is False
        assert "OPENAI_API_KEY" in response.error
        assert response.processed_count == 0

    def test_unknown_product_is_failure_envelope(self, db_session, merchant, text_provider, no_sleep):
        response = generate_text_embeddings(
            db_session, merchant, product_id=uuid4(), provider=text_provider, sleep=no_sleep
        )
        assert response.success is False
        assert "not found" in response.error

    def test_merchant_cannot_target_other_owner(self, db_session, merchant, text_provider):
        with pytest.raises(OwnerAuthorizationError):
            generate_text_embeddings(db_session, merchant, owner_id=uuid4(), provider=text_provider)
        with pytest.raises(OwnerAuthorizationError):
            search_by_text(db_session, merchant, "shoes", owner_id=uuid4(), provider=text_provider)

    def test_anonymous_requester_rejected(self, db_session, text_provider):
        with pytest.raises(OwnerAuthorizationError):
            search_by_text(db_session, Requester(user_id=None), "shoes", provider=text_provider)

    def test_admin_acts_for_owner(self, db_session, make_product, admin, text_provider, no_sleep):
        owner = uuid4()
        make_product(owner, "Kettle")

        response = generate_text_embeddings(db_session, admin, owner_id=owner, provider=text_provider, sleep=no_sleep)

        assert response.success is True
        assert response.processed_count == 1

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query(self, db_session, merchant, text_provider, query):
        response = search_by_text(db_session, merchant, query, provider=text_provider)
        assert response.success is False
        assert response.error
        assert text_provider.calls == []

    def test_invalid_limit(self, db_session, merchant, text_provider):
        response = search_by_text(db_session, merchant, "shoes", limit=0, provider=text_provider)
        assert response.success is False

    def test_provider_error_is_failure_envelope(self, db_session, merchant):
        provider = FakeTextProvider(fail_on=["shoes"], error=EmbeddingServiceError)
        response = search_by_text(db_session, merchant, "shoes", provider=provider)
        assert response.success is False
        assert "provider failure" in response.error

    def test_no_matches_is_success(self, db_session, merchant, text_provider):
        response = search_by_text(db_session, merchant, "anything", provider=text_provider)
        assert response.success is True
        assert response.results == []
        assert response.count == 0


class TestImageOperations:
    """Envelope behaviour of image generation and image search"""

    def test_generate_and_search_by_base64(self, db_session, make_product, merchant):
        owner = merchant.user_id
        shoe = make_product(owner, "Sneaker", images=["https://cdn/shoe.jpg"])
        lamp = make_product(owner, "Lamp", images=["https://cdn/lamp.jpg"])
        provider = FakeImageProvider(vectors={
            b"shoe": axis_vector(IMAGE_DIM, 1.0, 0.1),
            b"lamp": axis_vector(IMAGE_DIM, 0.0, 1.0),
            b"query": axis_vector(IMAGE_DIM, 1.0, 0.0),
        })

        for product, body in [(shoe, b"shoe"), (lamp, b"lamp")]:
            generated = generate_image_embeddings(
                db_session, merchant, product.id,
                raw_images={product.images[0]: body}, provider=provider,
            )
            assert generated.success is True
            assert (generated.processed_images, generated.total_images) == (1, 1)

        found = search_by_image(
            db_session, merchant, image_base64=base64.b64encode(b"query").decode(), provider=provider
        )

        assert found.success is True
        assert found.search_type == "image"
        assert [r.product_name for r in found.results] == ["Sneaker"]
        assert found.results[0].matched_image_url == "https://cdn/shoe.jpg"
        assert found.used_fallback is True

    def test_search_by_image_url(self, db_session, make_product, merchant):
        product = make_product(merchant.user_id, "Sneaker", images=["https://cdn/shoe.jpg"])
        provider = FakeImageProvider(vectors={b"shoe": axis_vector(IMAGE_DIM, 1.0)})
        generate_image_embeddings(
            db_session, merchant, product.id, raw_images={"https://cdn/shoe.jpg": b"shoe"}, provider=provider
        )
        fetcher = HttpImageFetcher(client=httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"shoe"))
        ))

        found = search_by_image(
            db_session, merchant, image_url="https://example.com/query.jpg", provider=provider, fetcher=fetcher
        )

        assert found.success is True
        assert found.image_url == "https://example.com/query.jpg"
        assert found.count == 1

    @pytest.mark.parametrize("sources", [
        {},
        {"image_url": "https://example.com/q.jpg", "image_base64": "cXVlcnk="},
        {"image_url": "   "},
    ])
    def test_exactly_one_image_source(self, db_session, merchant, image_provider, sources):
        response = search_by_image(db_session, merchant, provider=image_provider, **sources)
        assert response.success is False
        assert response.error
        assert image_provider.calls == []

    def test_anonymous_requester_is_failure_envelope(self, db_session, image_provider):
        response = search_by_image(
            db_session, Requester(user_id=None), image_base64="cXVlcnk=", provider=image_provider
        )
        assert response.success is False
        assert response.search_type == "image"
        assert "no owner" in response.error
        assert image_provider.calls == []

    def test_other_owner_still_rejected(self, db_session, merchant, image_provider):
        with pytest.raises(OwnerAuthorizationError):
            search_by_image(
                db_session, merchant, image_base64="cXVlcnk=", owner_id=uuid4(), provider=image_provider
            )

    def test_malformed_query_url(self, db_session, merchant, image_provider):
        response = search_by_image(
            db_session, merchant, image_url="https://cdn/q\x7f.jpg", provider=image_provider
        )
        assert response.success is False
        assert "invalid URL" in response.error
        assert image_provider.calls == []

    def test_malformed_stored_url_skipped(self, db_session, make_product, merchant):
        product = make_product(merchant.user_id, "Sneaker", images=["https://cdn/a\x7f.jpg", "https://cdn/ok.jpg"])
        fetcher = HttpImageFetcher(client=httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"ok"))
        ))

        response = generate_image_embeddings(
            db_session, merchant, product.id, provider=FakeImageProvider(), fetcher=fetcher
        )

        assert response.success is True
        assert (response.processed_images, response.total_images) == (1, 2)

    def test_invalid_base64(self, db_session, merchant, image_provider):
        response = search_by_image(db_session, merchant, image_base64="%%%not-base64%%%", provider=image_provider)
        assert response.success is False

    def test_product_not_found(self, db_session, merchant, image_provider):
        response = generate_image_embeddings(db_session, merchant, uuid4(), provider=image_provider)
        assert response.success is False
        assert "not found" in response.error

    def test_product_without_images(self, db_session, make_product, merchant, image_provider):
        product = make_product(merchant.user_id, "Gift card")
        response = generate_image_embeddings(db_session, merchant, product.id, provider=image_provider)
        assert response.success is True
        assert (response.processed_images, response.total_images) == (0, 0)

    def test_bulk_pass(self, db_session, make_product, merchant, no_sleep):
        owner = merchant.user_id
        make_product(owner, "One", images=["https://cdn/1.jpg"])
        make_product(owner, "Two", images=["https://cdn/2.jpg", "https://cdn/2b.jpg"])
        fetcher = HttpImageFetcher(client=httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=str(request.url).encode()))
        ))

        response = bulk_generate_image_embeddings(
            db_session, merchant, batch_size=5, provider=FakeImageProvider(), fetcher=fetcher, sleep=no_sleep
        )

        assert response.success is True
        assert response.products_in_batch == 2
        assert (response.processed_images, response.total_images) == (3, 3)
        assert response.has_more is False


class TestEmbeddingStatsOperation:
    def test_stats_envelope(self, db_session, make_product, merchant, text_provider, no_sleep):
        make_product(merchant.user_id, "Kettle")
        generate_text_embeddings(db_session, merchant, provider=text_provider, sleep=no_sleep)

        response = embedding_stats(db_session, merchant)

        assert response.success is True
        assert response.total_embeddings == 1
        assert response.coverage_percent == pytest.approx(100.0)
        assert response.models == {"fake-text-embedding": 1}
