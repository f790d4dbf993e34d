from datetime import datetime
from pathlib import Path

import httpx
import pytest

from votewatch.adapters.psp_votes import PspVotesAdapter, map_vote_symbol, parse_czech_date
from votewatch.config import ScraperConfig
from votewatch.exceptions import ScraperError
from votewatch.models.adapter_models import VoteValue

PAGE = (Path(__file__).parent / "fixtures" / "hlasy_80123.html").read_text(encoding="utf-8")
EMPTY_PAGE = "<html><body><p>Hlasování neexistuje.</p></body></html>"


def _adapter(pages: dict) -> PspVotesAdapter:
    def handler(request: httpx.Request) -> httpx.Response:
        g = request.url.params["g"]
        status, body = pages.get(g, (404, ""))
        return httpx.Response(status, text=body)

    return PspVotesAdapter(
        config=ScraperConfig(rate_limit_per_second=1000.0),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.parametrize(
    "text, expected",
    [
        ("5. března 2024, 10:15", datetime(2024, 3, 5, 10, 15)),
        ("98. schůze, 12. hlasování, 5. března 2024, 10:15", datetime(2024, 3, 5, 10, 15)),
        ("1.\xa0ledna 2023, 9:05:30", datetime(2023, 1, 1, 9, 5, 30)),
        ("30. prosince 2022", datetime(2022, 12, 30)),
        ("5. marca 2024, 10:15", None),
        ("31. února 2024, 10:15", None),
        ("", None),
    ],
)
def test_parse_czech_date(text: str, expected) -> None:
    assert parse_czech_date(text) == expected


def test_vote_symbols() -> None:
    assert map_vote_symbol("A") == VoteValue.YES
    assert map_vote_symbol("N") == VoteValue.NO
    assert map_vote_symbol("Z") == VoteValue.ABSTAIN
    assert map_vote_symbol("M") == VoteValue.ABSENT
    assert map_vote_symbol("0") == VoteValue.NOT_VOTING
    assert map_vote_symbol("?") == VoteValue.UNKNOWN
    assert map_vote_symbol("") == VoteValue.UNKNOWN


@pytest.mark.asyncio
async def test_fetch_session_parses_page() -> None:
    adapter = _adapter({"80123": (200, PAGE)})

    session = await adapter.fetch_session("80123")

    assert session.external_id == "80123"
    assert session.date == datetime(2024, 3, 5, 10, 15)
    assert session.title.startswith("Vládní návrh zákona o státním rozpočtu")
    assert session.source_url.endswith("hlasy.sqw?g=80123")
    assert [(v.politician_name, v.party_name, v.vote) for v in session.votes] == [
        ("Andrej Babiš", "ANO", VoteValue.YES),
        ("Alena Schillerová", "ANO", VoteValue.NO),
        ("Petr Fiala", "ODS", VoteValue.YES),
        ("Zbyněk Stanjura", "ODS", VoteValue.NOT_VOTING),
        ("Marek Benda", "ODS", VoteValue.ABSENT),
        ("Jan Novák", "Nezařazení", VoteValue.ABSTAIN),
    ]
    await adapter.close()


@pytest.mark.asyncio
async def test_page_without_roll_call_is_missing() -> None:
    adapter = _adapter({"1": (200, EMPTY_PAGE)})

    assert await adapter.fetch_session("1") is None
    assert await adapter.fetch_session("2") is None  # 404


@pytest.mark.asyncio
async def test_server_error_raises_scraper_error() -> None:
    adapter = _adapter({"3": (500, "oops")})

    with pytest.raises(ScraperError):
        await adapter.fetch_session("3")

