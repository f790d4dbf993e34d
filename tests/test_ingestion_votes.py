from datetime import datetime
from pathlib import Path

import httpx
import pytest
from sqlalchemy import func, select

from votewatch.adapters.psp_votes import PspVotesAdapter
from votewatch.config import ScraperConfig
from votewatch.db.models import PartyModel, PoliticianModel, VoteModel, VotingSessionModel
from votewatch.db.repositories import SystemLogRepository, VotingSessionRepository
from votewatch.exceptions import ConfigurationError
from votewatch.services import IngestionService

PAGE = (Path(__file__).parent / "fixtures" / "hlasy_80123.html").read_text(encoding="utf-8")

ROLL_CALL = [
    ("Petr Fiala", "ODS", "A"),
    ("Marek Benda", "ODS", "N"),
    ("Andrej Babiš", "ANO", "Z"),
]


async def _count(database, model) -> int:
    async with database.session() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def _voting_session(database, external_id: str) -> VotingSessionModel:
    async with database.session() as session:
        return await VotingSessionRepository(session).get_by_external_id(external_id)


@pytest.mark.asyncio
async def test_new_session_is_stored_with_votes(ingestion, database, make_session) -> None:
    report = await ingestion.ingest_sessions([make_session("100", ROLL_CALL)])

    assert report.sessions_upserted == 1
    assert report.sessions_created == 1
    assert report.votes_created == 3
    assert report.politicians_created == 3
    assert report.errors == []

    stored = await _voting_session(database, "100")
    assert stored.vote_count == 3
    assert stored.date == datetime(2024, 3, 5, 10, 15)
    assert stored.result_summary == {"yes": 1, "no": 1, "abstain": 1, "total": 3}
    assert await _count(database, PartyModel) == 2


@pytest.mark.asyncio
async def test_reingest_is_idempotent(ingestion, database, make_session) -> None:
    await ingestion.ingest_sessions([make_session("100", ROLL_CALL)])
    report = await ingestion.ingest_sessions([make_session("100", ROLL_CALL)])

    assert report.sessions_created == 0
    assert report.votes_created == 0
    assert report.votes_updated == 3
    assert report.politicians_created == 0
    assert await _count(database, VotingSessionModel) == 1
    assert await _count(database, PoliticianModel) == 3
    assert await _count(database, VoteModel) == 3
    assert (await _voting_session(database, "100")).vote_count == 3


@pytest.mark.asyncio
async def test_changed_vote_overwrites_without_touching_count(ingestion, database, make_session) -> None:
    await ingestion.ingest_sessions([make_session("100", ROLL_CALL)])
    changed = [("Petr Fiala", "ODS", "N")] + ROLL_CALL[1:]
    await ingestion.ingest_sessions([make_session("100", changed)])

    async with database.session() as session:
        result = await session.execute(
            select(VoteModel.vote, VoteModel.vote_metadata)
            .join(PoliticianModel, PoliticianModel.id == VoteModel.politician_id)
            .where(PoliticianModel.name == "Petr Fiala")
        )
        vote, metadata = result.one()

    assert vote == "no"
    assert metadata == {"symbol": "N", "party": "ODS"}
    assert (await _voting_session(database, "100")).vote_count == 3


@pytest.mark.asyncio
async def test_politicians_match_case_insensitively(ingestion, database, make_session) -> None:
    await ingestion.ingest_sessions([make_session("100", [("Petr Fiala", "ODS", "A")])])
    report = await ingestion.ingest_sessions([make_session("101", [("PETR FIALA", "ODS", "N")])])

    assert report.politicians_created == 0
    assert await _count(database, PoliticianModel) == 1
    assert await _count(database, VoteModel) == 2


@pytest.mark.asyncio
async def test_party_change_moves_politician(ingestion, database, make_session) -> None:
    await ingestion.ingest_sessions([make_session("100", [("Jan Novák", "ANO", "A")])])
    await ingestion.ingest_sessions([make_session("101", [("Jan Novák", "Nezařazení", "A")])])

    async with database.session() as session:
        result = await session.execute(
            select(PartyModel.name)
            .join(PoliticianModel, PoliticianModel.party_id == PartyModel.id)
            .where(PoliticianModel.name == "Jan Novák")
        )
        assert result.scalar_one() == "Nezařazení"


@pytest.mark.asyncio
async def test_session_without_date_is_reported(ingestion, database, make_session) -> None:
    report = await ingestion.ingest_sessions([
        make_session("100", ROLL_CALL, date=None),
        make_session("101", ROLL_CALL),
    ])

    assert report.sessions_upserted == 1
    assert len(report.errors) == 1
    error = report.errors[0]
    assert error.record_id == "100"
    assert error.field == "date"
    assert error.error_type == "RecordValidationError"
    assert await _voting_session(database, "100") is None


@pytest.mark.asyncio
async def test_vote_without_name_is_skipped(ingestion, database, make_session) -> None:
    report = await ingestion.ingest_sessions([
        make_session("100", [("", "ODS", "A"), ("Petr Fiala", "ODS", "A")]),
    ])

    assert report.votes_created == 1
    assert report.votes_skipped == 1
    assert (await _voting_session(database, "100")).vote_count == 1


@pytest.mark.asyncio
async def test_failed_session_rolls_back_everything(ingestion, database, make_session, monkeypatch) -> None:
    async def broken_increment(self, session_id, amount=1):
        raise RuntimeError("counter unavailable")

    monkeypatch.setattr(VotingSessionRepository, "increment_vote_count", broken_increment)

    report = await ingestion.ingest_sessions([make_session("100", ROLL_CALL)])

    assert report.sessions_upserted == 0
    assert report.errors[0].record_id == "100"
    assert report.errors[0].error_type == "RuntimeError"
    assert await _count(database, VotingSessionModel) == 0
    assert await _count(database, PoliticianModel) == 0
    assert await _count(database, PartyModel) == 0
    assert await _count(database, VoteModel) == 0


@pytest.mark.asyncio
async def test_ingest_votes_scrapes_range(database, cache, ingestion_config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        g = request.url.params["g"]
        if g == "80123":
            return httpx.Response(200, text=PAGE)
        if g == "80124":
            return httpx.Response(404)
        return httpx.Response(500, text="maintenance")

    scraper = PspVotesAdapter(
        config=ScraperConfig(rate_limit_per_second=1000.0),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    service = IngestionService(database, cache, config=ingestion_config, scraper=scraper)

    report = await service.ingest_votes(80123, 80125)

    assert report.sessions_upserted == 1
    assert report.sessions_missing == 1
    assert report.votes_created == 6
    assert [e.record_id for e in report.errors] == ["80125"]
    assert (await _voting_session(database, "80123")).vote_count == 6

    logs = await SystemLogRepository(database).get_recent_logs(log_type="vote_scrape")
    assert logs[0].status == "partial"
    assert logs[0].details["sessions_upserted"] == 1
    await scraper.close()


@pytest.mark.asyncio
async def test_ingest_votes_requires_scraper(ingestion) -> None:
    with pytest.raises(ConfigurationError):
        await ingestion.ingest_votes(1, 2)


@pytest.mark.asyncio
async def test_successful_ingest_invalidates_read_cache(ingestion, cache, make_session) -> None:
    cache.set("db_stats", "old")
    cache.set("recent_sessions:10", ["old"])
    cache.set("politician:1", "old")
    cache.set("tweet_stats", "kept")

    await ingestion.ingest_sessions([make_session("100", ROLL_CALL)])

    assert "db_stats" not in cache
    assert "recent_sessions:10" not in cache
    assert "politician:1" not in cache
    assert cache.get("tweet_stats") == "kept"
