from __future__ import annotations
import json
import logging
import os
import tempfile
from datetime import datetime

from trend_engine.ledger import HISTORY_RETENTION, TermLedger, TrendState

logger = logging.getLogger(__name__)


class LedgerRepository:
    """Durable home of a ``TrendState``. ``save`` is all-or-nothing."""

    def load(self) -> TrendState:
        raise NotImplementedError

    def save(self, state: TrendState) -> None:
        raise NotImplementedError


class JsonDocumentRepository(LedgerRepository):
    """The whole state as one JSON document on disk."""

    def __init__(self, path: str, retention: int = HISTORY_RETENTION):
        self.path = path
        self.retention = retention

    def _empty(self) -> TrendState:
        return TrendState(terms=TermLedger(retention=self.retention))

    def load(self) -> TrendState:
        if not os.path.exists(self.path):
            return self._empty()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                doc = json.load(f)
            if not isinstance(doc, dict):
                raise ValueError(f"expected an object, got {type(doc).__name__}")
            return TrendState.from_dict(doc, retention=self.retention)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            aside = f"{self.path}.{datetime.now().strftime('%Y%m%d%H%M%S')}.corrupt"
            logger.error("unreadable trends document %s (%s); moved to %s, starting empty", self.path, e, aside)
            os.replace(self.path, aside)
            return self._empty()

    def save(self, state: TrendState) -> None:
        d = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(d, exist_ok=True)

        fd, tmp = tempfile.mkstemp(prefix=".trends-", suffix=".json", dir=d)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
