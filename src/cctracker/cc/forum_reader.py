"""
Forum snapshot readers.

A reader returns the complete set of currently open threads in the
monitored forum sections every time it is called. There is no "since last
check" filtering; fetching the full live set each poll lets the tracker
recover from any update it missed.

Failures are reported, not raised: a reader returns ``FetchResult.failure``
so the reconciliation cycle can tell "the forum is empty" apart from "the
forum could not be read".
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, List, Mapping, Optional, Protocol

import aiohttp

from cctracker.cc.forum_sections import MONITORED_SECTION_IDS
from cctracker.datatypes.cc_datatypes import FetchResult, ThreadSnapshot
from cctracker.util.logger import get_logger

logger = get_logger("forum_reader")

_DEFAULT_USER_AGENT = "cctracker (Discord C&C tracker, 0.0.1)"
_MAX_PAGES_PER_SECTION = 50


class ForumSnapshotReader(Protocol):
    """Source of open-thread snapshots for the reconciliation cycle."""

    async def fetch_open_threads(self) -> FetchResult:
        ...


class MalformedPayloadError(ValueError):
    """Raised when a forum API response does not have the expected shape."""


def parse_thread_payload(
    payload: Mapping[str, Any],
    prefix_labels: Optional[Mapping[int, str]] = None,
) -> Optional[ThreadSnapshot]:
    """Convert one XenForo thread object into a snapshot.

    Returns None for threads that are locked, deleted or awaiting approval.

    Raises:
        MalformedPayloadError: If the id, node or title is missing or invalid.
    """
    try:
        thread_id = int(payload["thread_id"])
        forum_id = int(payload["node_id"])
        title = str(payload["title"])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"Thread payload missing required field: {exc}") from exc

    if not payload.get("discussion_open", True):
        return None
    if payload.get("discussion_state", "visible") != "visible":
        return None

    prefix_tag = _prefix_label(payload, prefix_labels or {})
    return ThreadSnapshot(thread_id=thread_id, forum_id=forum_id, title=title, prefix_tag=prefix_tag)


def _prefix_label(payload: Mapping[str, Any], prefix_labels: Mapping[int, str]) -> Optional[str]:
    for key in ("prefix", "prefix_title"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    prefix_id = payload.get("prefix_id")
    if prefix_id in (None, 0, "0", ""):
        return None
    try:
        return prefix_labels.get(int(prefix_id))
    except (TypeError, ValueError):
        return None


def _thread_list(data: Mapping[str, Any], key: str, section_id: int) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedPayloadError(f"section {section_id} returned a non-list {key!r}")
    return value


def _last_page(data: Mapping[str, Any], page: int, section_id: int) -> int:
    pagination = data.get("pagination")
    if pagination is None:
        return page
    if not isinstance(pagination, Mapping):
        raise MalformedPayloadError(f"section {section_id} returned non-object pagination")
    try:
        return int(pagination.get("last_page") or page)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(f"section {section_id} returned an invalid last_page") from exc


class XenForoApiReader:
    """Reads open threads from the XenForo REST API.

    Every monitored section is paged through ``/forums/{id}/threads``. If
    any request fails the whole fetch fails: a partial snapshot would make
    the missing threads look closed and get them evicted.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_url: str,
        api_key: str,
        *,
        section_ids: Iterable[int] = MONITORED_SECTION_IDS,
        prefix_labels: Optional[Mapping[int, str]] = None,
        request_timeout: float = 15.0,
    ) -> None:
        self._session = session
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._section_ids = tuple(section_ids)
        self._prefix_labels = dict(prefix_labels or {})
        self._request_timeout = request_timeout

    def _headers(self) -> dict[str, str]:
        return {
            "XF-Api-Key": self._api_key,
            "User-Agent": _DEFAULT_USER_AGENT,
            "Accept": "application/json",
        }

    async def fetch_open_threads(self) -> FetchResult:
        threads: dict[int, ThreadSnapshot] = {}
        try:
            for section_id in self._section_ids:
                for snapshot in await self._fetch_section(section_id):
                    threads[snapshot.thread_id] = snapshot
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("[FORUM READER] Request to forum API failed: %s", exc)
            return FetchResult.failure(f"request failed: {exc}")
        except MalformedPayloadError as exc:
            logger.warning("[FORUM READER] Forum API returned a malformed payload: %s", exc)
            return FetchResult.failure(f"malformed payload: {exc}")

        logger.debug("[FORUM READER] Fetched %d open threads from %d sections", len(threads), len(self._section_ids))
        return FetchResult.success(list(threads.values()))

    async def _fetch_section(self, section_id: int) -> List[ThreadSnapshot]:
        snapshots: List[ThreadSnapshot] = []
        page = 1
        while page <= _MAX_PAGES_PER_SECTION:
            data = await self._get_json(f"{self._api_url}/forums/{section_id}/threads", {"page": str(page)})

            for raw in _thread_list(data, "sticky", section_id) + _thread_list(data, "threads", section_id):
                if not isinstance(raw, Mapping):
                    raise MalformedPayloadError(f"section {section_id} returned a non-object thread")
                snapshot = parse_thread_payload(raw, self._prefix_labels)
                if snapshot is not None:
                    snapshots.append(snapshot)

            if page >= _last_page(data, page, section_id):
                break
            page += 1
        return snapshots

    async def _get_json(self, url: str, params: Mapping[str, str]) -> Mapping[str, Any]:
        timeout_cfg = aiohttp.ClientTimeout(total=self._request_timeout)
        async with self._session.get(url, headers=self._headers(), params=params, timeout=timeout_cfg) as resp:
            if resp.status >= 400:
                raise aiohttp.ClientResponseError(
                    resp.request_info,
                    resp.history,
                    status=resp.status,
                    message=f"forum API answered {resp.status} for {url}",
                )
            try:
                data = await resp.json(content_type=None)
            except ValueError as exc:
                raise MalformedPayloadError(f"response from {url} is not JSON") from exc

        if not isinstance(data, Mapping):
            raise MalformedPayloadError(f"response from {url} is not an object")
        return data
