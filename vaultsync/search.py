"""
Search over decrypted records.

A keyword matches a record's website by plain substring, by the pinyin
spelling of the website (joined or space separated), or by the initial
letters of its pinyin syllables, so "yh" finds "银行".
"""

import asyncio
import inspect
import locale
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from pypinyin import Style, lazy_pinyin

from . import config
from .models import DisplayRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transliteration:
    joined: str
    spaced: str
    initials: str


def transliterate(text: str) -> Transliteration:
    """Tone-stripped pinyin of ``text``, lower-cased. Non-Chinese runs pass through."""
    syllables = [s.strip().lower() for s in lazy_pinyin(text, style=Style.NORMAL)]
    syllables = [s for s in syllables if s]
    return Transliteration(
        joined="".join(syllables),
        spaced=" ".join(syllables),
        initials="".join(s[0] for s in syllables),
    )


def _sort_key(website: str) -> Tuple[str, str]:
    """Collate case-insensitively under LC_COLLATE; exact text breaks ties."""
    folded = website.casefold()
    try:
        return locale.strxfrm(folded), locale.strxfrm(website)
    except ValueError:
        # strxfrm rejects embedded NULs
        return folded, website


def sort_by_website(records: Sequence[DisplayRecord]) -> List[DisplayRecord]:
    return sorted(records, key=lambda r: _sort_key(r.website))


def matches(record: DisplayRecord, keyword: str) -> bool:
    """True if ``keyword`` (already lower-cased and stripped) matches the website."""
    website = record.website.lower()
    if keyword in website:
        return True
    try:
        t = transliterate(record.website)
    except Exception as e:
        # A bad record only loses phonetic matching; the rest of the list is unaffected.
        logger.debug(f"Transliteration failed for record {record.id}: {e}")
        return False
    return keyword in t.joined or keyword in t.spaced or keyword in t.initials


def filter_records(records: Sequence[DisplayRecord], keyword: str) -> List[DisplayRecord]:
    """
    Filter records by website and sort the result by website.

    A blank keyword returns every record. The input is never modified.
    """
    needle = (keyword or "").strip().lower()
    if not needle:
        return sort_by_website(records)
    return sort_by_website([r for r in records if matches(r, needle)])


class Debouncer:
    """Runs ``callback`` once the calls to ``trigger`` have been quiet for ``delay`` seconds.

    Each trigger cancels the pending call and schedules a new one, so only the
    last keystroke of a burst reaches the callback. Must be used from a running
    event loop.
    """

    def __init__(self, callback: Callable[..., Any], delay: float = config.SEARCH_DEBOUNCE_SECONDS):
        self.callback = callback
        self.delay = delay
        self._task: Optional[asyncio.Task] = None
        self._args: tuple = ()
        self._fired = False

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done() and not self._fired

    def trigger(self, *args: Any) -> asyncio.Task:
        self.cancel()
        self._args = args
        self._fired = False
        self._task = asyncio.get_running_loop().create_task(self._run_later())
        return self._task

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    async def flush(self) -> None:
        """Run the pending call now instead of waiting for the quiet period."""
        if not self.pending:
            return
        self._task.cancel()
        self._task = None
        await self._fire()

    async def _run_later(self) -> None:
        await asyncio.sleep(self.delay)
        await self._fire()

    async def _fire(self) -> None:
        self._fired = True
        result = self.callback(*self._args)
        if inspect.isawaitable(result):
            await result


class SearchSession:
    """Search state of one render cycle: the projected records and the latest results."""

    def __init__(self, records: Sequence[DisplayRecord] = (),
                 on_results: Optional[Callable[[List[DisplayRecord]], Any]] = None,
                 delay: float = config.SEARCH_DEBOUNCE_SECONDS):
        self.records: List[DisplayRecord] = list(records)
        self.keyword = ""
        self.results: List[DisplayRecord] = sort_by_website(self.records)
        self.on_results = on_results
        self._debouncer = Debouncer(self.search, delay)

    def set_records(self, records: Sequence[DisplayRecord]) -> List[DisplayRecord]:
        """Swap in a freshly projected record set and re-apply the current keyword."""
        self.records = list(records)
        return self.search(self.keyword)

    def search(self, keyword: str) -> List[DisplayRecord]:
        self.keyword = keyword
        self.results = filter_records(self.records, keyword)
        if self.on_results is not None:
            self.on_results(self.results)
        return self.results

    def on_keystroke(self, keyword: str) -> asyncio.Task:
        return self._debouncer.trigger(keyword)

    async def flush(self) -> None:
        await self._debouncer.flush()

    def cancel(self) -> None:
        self._debouncer.cancel()
