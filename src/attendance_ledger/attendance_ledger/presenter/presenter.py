from __future__ import annotations

from typing import Any, Protocol

from ..common.logging import get_logger

logger = get_logger(__name__)


class Presenter(Protocol):
    def present(self, view: Any) -> None:
        raise NotImplementedError


class NullPresenter:
    def present(self, view: Any) -> None:
        return None


class LoggingPresenter:
    """Records every emitted view-model; notices are logged at info."""

    def present(self, view: Any) -> None:
        notice = getattr(view, "notice", None)
        if notice is not None:
            logger.info("%s -> %s: %s", type(view).__name__, notice.code, notice.message)
        else:
            logger.debug("Emitting %s", type(view).__name__)
