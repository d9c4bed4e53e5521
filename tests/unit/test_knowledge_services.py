"""
Tests for knowledge retrieval, vector sync, article management and the
article authoring helpers.
"""
import pytest

from autocrm.config import ArticleStatus
from autocrm.core import CompletionException, ResourceNotFoundException, ValidationException
from autocrm.infrastructure.llm import MockLLMClient
from autocrm.infrastructure.vectorstore import InMemoryVectorIndex, VectorEntry
from autocrm.knowledge.application import (
    ArticleAssistService,
    KnowledgeArticleService,
    KnowledgeRetrievalService,
    KnowledgeSyncService,
)

from conftest import FakeEmbedder, InMemoryArticleRepository, ScriptedLLM, make_article


class BrokenIndex(InMemoryVectorIndex):
    async def query(self, vector, top_k):
        raise RuntimeError("milvus unreachable")

    async def list_ids(self):
        raise RuntimeError("milvus unreachable")


def _sync_service(embedder=None, index=None, batch_size=5):
    sleeps = []

    async def record_sleep(seconds):
        sleeps.append(seconds)

    service = KnowledgeSyncService(
        embedder or FakeEmbedder(),
        index or InMemoryVectorIndex(),
        batch_size=batch_size,
        batch_delay_seconds=1.0,
        sleep=record_sleep
    )
    return service, sleeps


def _articles(count):
    return [
        make_article(article_id=f"a{i}", title=f"Article {i}", content=f"Body {i}")
        for i in range(count)
    ]


class TestRetrieval:

    @pytest.mark.asyncio
    async def test_blank_text_returns_nothing(self):
        embedder = FakeEmbedder()
        service = KnowledgeRetrievalService(embedder, InMemoryVectorIndex())
        assert await service.find_similar("   ") == []
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_empty_index_returns_nothing(self):
        service = KnowledgeRetrievalService(FakeEmbedder(), InMemoryVectorIndex())
        assert await service.find_similar("printer jam") == []

    @pytest.mark.asyncio
    async def test_index_failure_returns_nothing(self):
        service = KnowledgeRetrievalService(FakeEmbedder(), BrokenIndex())
        assert await service.find_similar("printer jam") == []

    @pytest.mark.asyncio
    async def test_orders_limits_and_thresholds(self):
        index = InMemoryVectorIndex()
        await index.upsert([
            VectorEntry("near", [1.0, 0.0], make_article("near", title="Near").to_metadata()),
            VectorEntry("mid", [0.8, 0.6], make_article("mid", title="Mid").to_metadata()),
            VectorEntry("far", [0.0, 1.0], make_article("far", title="Far").to_metadata()),
        ])
        service = KnowledgeRetrievalService(FakeEmbedder(default=[1.0, 0.0]), index)

        top_two = await service.find_similar("query", limit=2)
        assert [s.article.id for s in top_two] == ["near", "mid"]
        assert top_two[0].similarity == pytest.approx(1.0)

        above = await service.find_similar("query", limit=3, threshold=0.7)
        assert [s.article.title for s in above] == ["Near", "Mid"]

    @pytest.mark.asyncio
    async def test_self_similarity_with_deterministic_embeddings(self):
        mock = MockLLMClient(dimension=16)
        index = InMemoryVectorIndex()
        sync, _ = _sync_service(embedder=mock, index=index)
        article = make_article()
        await sync.sync([article])

        service = KnowledgeRetrievalService(mock, index)
        results = await service.find_similar(article.embedding_text, limit=1)
        assert results[0].article.id == article.id
        assert results[0].similarity == pytest.approx(1.0)


class TestSync:

    @pytest.mark.asyncio
    async def test_empty_article_list_on_empty_index(self):
        service, _ = _sync_service(index=InMemoryVectorIndex())

        report = await service.sync([])

        assert report.success is True
        assert report.message == "No articles found to process"
        assert report.total_processed == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", ["diff", "rebuild"])
    async def test_empty_article_list_clears_deleted_articles(self, strategy):
        index = InMemoryVectorIndex()
        await index.upsert([VectorEntry("deleted-article", [1.0, 0.0, 0.0], {})])
        service, _ = _sync_service(index=index)

        report = await service.sync([], strategy)

        assert report.success is True
        assert report.message.startswith("No articles found to process")
        assert await index.list_ids() == []

    @pytest.mark.asyncio
    async def test_diff_is_idempotent_and_removes_stale(self):
        index = InMemoryVectorIndex()
        await index.upsert([VectorEntry("removed", [1.0, 0.0, 0.0], {})])
        service, sleeps = _sync_service(index=index, batch_size=5)
        articles = _articles(12)

        first = await service.sync(articles)
        second = await service.sync(articles)

        assert first.total_processed == 12
        assert first.deleted == 1
        assert "(removed 1 stale vectors)" in first.message
        assert second.deleted == 0
        assert second.message == "Successfully synced 12 articles to vector store"
        assert sorted(await index.list_ids()) == sorted(a.id for a in articles)
        # Three batches per run, pauses only between batches
        assert sleeps == [1.0, 1.0, 1.0, 1.0]

    @pytest.mark.asyncio
    async def test_rebuild_clears_first(self):
        index = InMemoryVectorIndex()
        await index.upsert([VectorEntry("removed", [1.0, 0.0, 0.0], {})])
        service, _ = _sync_service(index=index)

        report = await service.sync(_articles(2), strategy="rebuild")

        assert report.success is True
        assert report.message.endswith("(after clearing existing vectors)")
        assert sorted(await index.list_ids()) == ["a0", "a1"]

    @pytest.mark.asyncio
    async def test_failed_batch_is_reported_and_others_continue(self):
        articles = _articles(10)
        embedder = FakeEmbedder(fail_on={articles[6].embedding_text})
        index = InMemoryVectorIndex()
        service, _ = _sync_service(embedder=embedder, index=index)

        report = await service.sync(articles)

        assert report.success is True
        assert report.total_processed == 5
        assert len(report.errors) == 1
        assert report.errors[0].startswith("Batch 2: ")
        assert await index.count() == 5

    @pytest.mark.asyncio
    async def test_unreadable_index_fails_the_sync(self):
        service, _ = _sync_service(index=BrokenIndex())
        report = await service.sync(_articles(1))
        assert report.success is False
        assert report.message.startswith("Failed to sync knowledge base:")

    @pytest.mark.asyncio
    async def test_unknown_strategy_rejected(self):
        service, _ = _sync_service()
        with pytest.raises(ValidationException):
            await service.sync(_articles(1), strategy="merge")

    @pytest.mark.asyncio
    async def test_metadata_is_stored_beside_vector(self):
        index = InMemoryVectorIndex()
        service, _ = _sync_service(index=index)
        await service.sync([make_article("a1", title="Reset password")])

        match = (await index.query([1.0, 0.0, 0.0], top_k=1))[0]
        assert match.metadata["title"] == "Reset password"
        assert match.metadata["status"] == "published"
        assert match.metadata["tags"] == ["account"]


class TestArticleService:

    @pytest.mark.asyncio
    async def test_create_embeds_immediately(self):
        index = InMemoryVectorIndex()
        sync, _ = _sync_service(index=index)
        service = KnowledgeArticleService(InMemoryArticleRepository(), sync)

        article = await service.create_article(
            "VPN setup", "Install the client", tags={"vpn"}, status=ArticleStatus.PUBLISHED
        )

        assert await index.list_ids() == [article.id]

    @pytest.mark.asyncio
    async def test_update_refreshes_vector_metadata(self):
        index = InMemoryVectorIndex()
        sync, _ = _sync_service(index=index)
        repo = InMemoryArticleRepository([make_article("a1")])
        service = KnowledgeArticleService(repo, sync)

        await service.update_article("a1", status=ArticleStatus.ARCHIVED)

        match = (await index.query([1.0, 0.0, 0.0], top_k=1))[0]
        assert match.metadata["status"] == "archived"

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self):
        index = InMemoryVectorIndex()
        sync, _ = _sync_service(index=index)
        repo = InMemoryArticleRepository([make_article("a1")])
        service = KnowledgeArticleService(repo, sync)

        article = await service.update_article("a1", content="Use the self-service portal")

        assert article.title == "Reset password"
        assert article.content == "Use the self-service portal"
        assert article.tags == {"account"}
        match = (await index.query([1.0, 0.0, 0.0], top_k=1))[0]
        assert match.metadata["content"] == "Use the self-service portal"

    @pytest.mark.asyncio
    async def test_delete_removes_vector(self):
        index = InMemoryVectorIndex()
        sync, _ = _sync_service(index=index)
        repo = InMemoryArticleRepository([make_article("a1")])
        service = KnowledgeArticleService(repo, sync)
        await service.resync()

        await service.delete_article("a1")

        assert await index.count() == 0
        with pytest.raises(ResourceNotFoundException):
            await service.delete_article("a1")

    @pytest.mark.asyncio
    async def test_missing_article(self):
        sync, _ = _sync_service()
        service = KnowledgeArticleService(InMemoryArticleRepository(), sync)
        with pytest.raises(ResourceNotFoundException):
            await service.get_article("nope")


class TestArticleAssist:

    @pytest.mark.asyncio
    async def test_tags_are_normalized(self):
        llm = ScriptedLLM({"tags": {"tags": ["Billing", "billing", " VPN ", "a", "b", "c", "d"]}})
        tags = await ArticleAssistService(llm).generate_tags("t", "c")
        assert tags == ["billing", "vpn", "a", "b", "c"]

    @pytest.mark.asyncio
    async def test_tags_failure_is_empty(self):
        llm = ScriptedLLM({"tags": CompletionException("down")})
        assert await ArticleAssistService(llm).generate_tags("t", "c") == []

    @pytest.mark.asyncio
    async def test_quality_scores_clamped(self):
        llm = ScriptedLLM({"article_quality": {
            "clarity": 12, "completeness": 7, "technicalAccuracy": -1,
            "formatting": "8", "suggestions": "Add screenshots"
        }})
        analysis = await ArticleAssistService(llm).analyze_article_quality("t", "c")
        assert analysis.clarity == 10.0
        assert analysis.completeness == 7.0
        assert analysis.technical_accuracy == 0.0
        assert analysis.formatting == 8.0
        assert analysis.suggestions == ["Add screenshots"]

    @pytest.mark.asyncio
    async def test_suggestions_use_higher_temperature(self):
        llm = ScriptedLLM({"article_suggestions": "Add a section on 2FA."})
        text = await ArticleAssistService(llm).generate_article_suggestions(
            "Locked out", "2FA code never arrives", [make_article()]
        )
        assert text == "Add a section on 2FA."
        assert llm.calls[0]["temperature"] == 0.5
