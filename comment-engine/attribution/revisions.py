"""
MediaWiki action API client: revision listing, diffs and wikitext rendering.
Network failures are logged and yield empty results. Rendering failures raise
ParseFailure so the diff matcher can degrade.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from attribution.engine import MarkupRenderer, RevisionSource
from attribution.models import RevisionRef
from discussion.core import API_URL, REQUEST_TIMEOUT, USER_AGENT, setup_logger
from discussion.errors import ParseFailure

logger = setup_logger("discussion.api")

API_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _api_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(API_TIMESTAMP_FORMAT)


def _parse_api_timestamp(value: str) -> datetime:
    return datetime.strptime(value, API_TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class MediaWikiClient(RevisionSource, MarkupRenderer):

    def __init__(self, api_url: str = API_URL, session: Optional[requests.Session] = None, timeout: int = REQUEST_TIMEOUT):
        self._api_url = api_url
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})
        self._timeout = timeout

    def _request(self, params: Dict[str, Any], post: bool = False) -> Optional[Dict[str, Any]]:
        """
        Performs an API request. Returns the decoded JSON body, or None on network
        errors, non-2xx statuses and API-level errors.
        """
        params = dict(params, format="json", formatversion=2)
        try:
            if post:
                r = self._session.post(self._api_url, data=params, timeout=self._timeout)
            else:
                r = self._session.get(self._api_url, params=params, timeout=self._timeout)
        except requests.exceptions.Timeout:
            logger.warning(f"API timeout: action={params.get('action')}", extra={"context": "api"})
            return None
        except requests.exceptions.RequestException as e:
            logger.warning(f"API request failed: action={params.get('action')}: {e}", extra={"context": "api"})
            return None

        if not (200 <= r.status_code < 300):
            logger.warning(f"API returned HTTP {r.status_code}: action={params.get('action')}", extra={"context": "api"})
            return None

        try:
            data = r.json()
        except ValueError:
            logger.warning(f"API returned invalid JSON: action={params.get('action')}", extra={"context": "api"})
            return None

        if "error" in data:
            logger.warning(
                f"API error {data['error'].get('code')}: {data['error'].get('info')}",
                extra={"context": "api"},
            )
            return None

        return data

    def get_revisions(self, title: str, user: str, start: datetime, end: datetime) -> List[RevisionRef]:
        data = self._request({
            "action": "query",
            "prop": "revisions",
            "titles": title,
            "rvprop": "ids|timestamp|user|comment",
            "rvdir": "newer",
            "rvstart": _api_timestamp(start),
            "rvend": _api_timestamp(end),
            "rvuser": user,
            "rvlimit": 500,
        })
        if not data:
            return []

        revisions = []
        for page in data.get("query", {}).get("pages", []):
            for rev in page.get("revisions", []):
                revisions.append(RevisionRef(
                    revid=rev["revid"],
                    timestamp=_parse_api_timestamp(rev["timestamp"]),
                    user=rev.get("user"),
                    parent_id=rev.get("parentid"),
                    comment=rev.get("comment", ""),
                ))
        return revisions

    def get_compare_body(self, title: str, revid: int) -> Optional[str]:
        data = self._request({
            "action": "compare",
            "fromtitle": title,
            "fromrev": revid,
            "torelative": "prev",
            "prop": "diff",
        })
        if not data:
            return None
        return data.get("compare", {}).get("body")

    def render(self, wikitext: str, title: Optional[str] = None) -> str:
        params = {
            "action": "parse",
            "text": wikitext,
            "prop": "text",
            "pst": 1,
            "disablelimitreport": 1,
            "contentmodel": "wikitext",
        }
        if title:
            params["title"] = title

        data = self._request(params, post=True)
        html = (data or {}).get("parse", {}).get("text")
        if html is None:
            raise ParseFailure(details={"title": title})
        return html
