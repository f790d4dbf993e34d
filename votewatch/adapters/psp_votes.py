"""
Chamber of Deputies (psp.cz) roll-call page adapter.

Each roll-call lives on its own page, ``hlasy.sqw?g=<id>``. The page title
holds the meeting line (with a Czech long-form date) and the motion title;
below it every party gets a heading followed by a list of members and
their vote flags.

Responsibility: Fetch and parse roll-call pages into ScrapedSession records
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .base_adapter import BaseAdapter
from ..config import ScraperConfig, settings
from ..exceptions import ScraperError
from ..models.adapter_models import ScrapedSession, ScrapedVote, VoteValue

CZECH_MONTHS = {
    "ledna": 1,
    "února": 2,
    "března": 3,
    "dubna": 4,
    "května": 5,
    "června": 6,
    "července": 7,
    "srpna": 8,
    "září": 9,
    "října": 10,
    "listopadu": 11,
    "prosince": 12,
}

VOTE_SYMBOLS = {
    "A": VoteValue.YES,
    "N": VoteValue.NO,
    "Z": VoteValue.ABSTAIN,
    "K": VoteValue.ABSTAIN,
    "M": VoteValue.ABSENT,
    "0": VoteValue.NOT_VOTING,
    "X": VoteValue.NOT_VOTING,
}

# "5. března 2024, 10:15" (time part optional)
_DATE_PATTERN = re.compile(
    r"(\d{1,2})\.\s*([^\d\s,]+(?:\s+[^\d\s,]+)*)\s*(\d{4})"
    r"(?:,\s*(\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)
_PARTY_HEADING = re.compile(r"(.+?)\s*\(")


def parse_czech_date(text: str) -> Optional[datetime]:
    """
    Parse a Czech long-form date such as ``5. března 2024, 10:15``.
    
    Returns:
        Naive datetime, or None when no recognizable date is present
    """
    if not text:
        return None
    match = _DATE_PATTERN.search(text.replace("\xa0", " "))
    if not match:
        return None
    
    day, month_name, year, hour, minute, second = match.groups()
    month = CZECH_MONTHS.get(month_name.strip().lower())
    if month is None:
        return None
    
    try:
        return datetime(
            int(year),
            month,
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
        )
    except ValueError:
        return None


def map_vote_symbol(symbol: str) -> VoteValue:
    """Translate a page vote flag (``A``, ``N``, ...) to a VoteValue."""
    return VOTE_SYMBOLS.get(symbol.strip().upper(), VoteValue.UNKNOWN)


class PspVotesAdapter(BaseAdapter[ScrapedSession]):
    """Adapter for psp.cz roll-call pages."""
    
    TITLE_SELECTOR = "h1.page-title-x"
    PARTY_SELECTOR = "h2.section-title.center"
    
    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or settings.scraper
        super().__init__(
            source_name="psp_votes",
            rate_limit_per_second=self.config.rate_limit_per_second,
            max_retries=3,
            timeout_seconds=self.config.timeout_seconds,
        )
        self.client = client or httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "text/html",
            },
            follow_redirects=True,
        )
    
    def session_url(self, external_id: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/hlasy.sqw?g={external_id}"
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get_page(self, url: str) -> Optional[str]:
        response = await self.client.get(url)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.text
    
    async def fetch_session(self, external_id: str) -> Optional[ScrapedSession]:
        """
        Fetch and parse one roll-call page.
        
        Args:
            external_id: Roll-call identifier (the ``g`` query parameter)
        
        Returns:
            ScrapedSession, or None when the page holds no roll-call
        
        Raises:
            ScraperError: If the page cannot be downloaded or parsed
        """
        url = self.session_url(external_id)
        await self.rate_limiter.acquire()
        
        try:
            html = await self._get_page(url)
        except httpx.HTTPError as exc:
            raise ScraperError(f"Failed to fetch {url}: {exc}") from exc
        
        if html is None:
            self.logger.warning(f"No voting session found at g={external_id}")
            return None
        
        soup = BeautifulSoup(html, "html.parser")
        if soup.select_one(self.TITLE_SELECTOR) is None:
            self.logger.warning(f"No voting session found at g={external_id}")
            return None
        
        try:
            session = self.normalize({"external_id": external_id, "source_url": url, "soup": soup})
        except (ValueError, AttributeError) as exc:
            raise ScraperError(f"Failed to parse {url}: {exc}") from exc
        
        self.logger.info(
            f"Parsed session {external_id}: {len(session.votes)} votes, date={session.date}"
        )
        return session
    
    def normalize(self, raw_data: Dict[str, Any]) -> ScrapedSession:
        """
        Build a ScrapedSession from a parsed roll-call page.
        
        Args:
            raw_data: Dict with ``external_id``, ``source_url`` and ``soup``
        """
        soup: BeautifulSoup = raw_data["soup"]
        heading = soup.select_one(self.TITLE_SELECTOR)
        if heading is None:
            raise ValueError("roll-call page has no title")
        
        lines = [
            line.strip()
            for line in heading.get_text("\n").split("\n")
            if line.strip()
        ]
        meeting_info = re.sub(r"\s+", " ", lines[0].replace("\xa0", " ")) if lines else ""
        title = " ".join(lines[1:]).strip()
        
        return ScrapedSession(
            external_id=str(raw_data["external_id"]),
            title=title,
            date=parse_czech_date(meeting_info),
            source_url=raw_data.get("source_url"),
            description=meeting_info or None,
            votes=self._parse_votes(soup),
        )
    
    def _parse_votes(self, soup: BeautifulSoup) -> List[ScrapedVote]:
        votes: List[ScrapedVote] = []
        
        for section in soup.select(self.PARTY_SELECTOR):
            heading = section.get_text(" ", strip=True)
            match = _PARTY_HEADING.match(heading)
            if not match:
                self.logger.debug(f"Skipping non-party section: {heading}")
                continue
            party_name = match.group(1).strip()
            
            results = section.find_next_sibling("ul", class_="results")
            if results is None:
                self.logger.warning(f"No vote list found for party {party_name}")
                continue
            
            for item in results.find_all("li"):
                link = item.find("a")
                if link is None:
                    continue
                name = link.get_text(" ", strip=True)
                flag = item.select_one("span.flag")
                symbol = flag.get_text(strip=True) if flag else ""
                votes.append(
                    ScrapedVote(
                        politician_name=name,
                        party_name=party_name,
                        vote_symbol=symbol,
                        vote=map_vote_symbol(symbol),
                    )
                )
        
        return votes
    
    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()
