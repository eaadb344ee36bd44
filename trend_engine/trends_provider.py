from __future__ import annotations
from typing import List, Optional
import pandas as pd
import requests


class SuggestProvider:
    def suggest(self, query: str) -> List[str]:
        raise NotImplementedError


class TrendsProvider:
    def related_queries(self, term: str, timeframe: str) -> Optional[pd.DataFrame]:
        """Rising related queries of ``term`` (columns: query, value[, formattedValue])."""
        raise NotImplementedError

    def interest_over_time(self, term: str, timeframe: str) -> Optional[pd.Series]:
        raise NotImplementedError


class GoogleSuggestProvider(SuggestProvider):
    """Autocomplete suggestions from the public Google suggest endpoint.

    The ``firefox`` client answers with ``[query, [suggestion, ...], ...]``.
    """

    def __init__(self, url: str, hl: str = "en", timeout: float = 15.0, session: Optional[requests.Session] = None):
        self.url = url
        self.hl = hl
        self.timeout = timeout
        self.session = session or requests.Session()

    def suggest(self, query: str) -> List[str]:
        r = self.session.get(
            self.url,
            params={"client": "firefox", "hl": self.hl, "q": query},
            timeout=self.timeout,
        )
        r.raise_for_status()
        payload = r.json()

        if not isinstance(payload, list) or len(payload) < 2 or not isinstance(payload[1], list):
            raise ValueError(f"unexpected suggest payload for {query!r}: {str(payload)[:120]}")

        return [str(s) for s in payload[1] if isinstance(s, str)]


class PyTrendsProvider(TrendsProvider):
    def __init__(self, hl: str = "en-US", tz: int = 0, geo: str = "US"):
        self.hl = hl
        self.tz = tz
        self.geo = geo
        self._pytrends = None

    @property
    def pytrends(self):
        # TrendReq fetches cookies on construction, so build it on first use
        if self._pytrends is None:
            from pytrends.request import TrendReq
            self._pytrends = TrendReq(hl=self.hl, tz=self.tz)
        return self._pytrends

    @staticmethod
    def _is_bad_request(e: Exception) -> bool:
        msg = str(e)
        return " 400" in msg or "code 400" in msg

    def related_queries(self, term: str, timeframe: str) -> Optional[pd.DataFrame]:
        pt = self.pytrends
        try:
            pt.build_payload([term], timeframe=timeframe, geo=self.geo)
            rq = pt.related_queries() or {}
        except Exception as e:
            # 400 means the payload combination is not served; there is nothing to retry
            if self._is_bad_request(e):
                return None
            raise

        bundle = rq.get(term) or {}
        df = bundle.get("rising")
        if df is None or getattr(df, "empty", True):
            return None
        return df

    def interest_over_time(self, term: str, timeframe: str) -> Optional[pd.Series]:
        pt = self.pytrends
        try:
            pt.build_payload([term], timeframe=timeframe, geo=self.geo)
            df = pt.interest_over_time()
        except Exception as e:
            if self._is_bad_request(e):
                return None
            raise

        if df is None or df.empty:
            return None
        if "isPartial" in df.columns:
            df = df.drop(columns=["isPartial"])
        if term not in df.columns:
            return None
        return df[term]
