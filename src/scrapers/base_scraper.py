from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger

# Non-2xx bodies are kept for diagnostics, but only this much of them
ERROR_BODY_LIMIT = 500


class TransportError(Exception):
    """Raised when an HTTP strategy (or every strategy) fails to return a body."""

    def __init__(self, message: str, code: str = "TRANSPORT", body: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.body = body


class ResolutionError(TransportError):
    """Raised when the DNS-over-HTTPS lookup yields no IPv4 address."""

    def __init__(self, message: str, code: str = "RESOLUTION"):
        super().__init__(message, code=code)


def truncate_body(text: str, limit: int = ERROR_BODY_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more chars]"


class FetchStrategy(ABC):
    """One way of turning a URL plus headers into response text."""

    name: str = "unknown"

    @abstractmethod
    async def fetch_text(self, url: str, headers: Dict[str, str]) -> str:
        """Fetch ``url`` and return the full body.

        Raises:
            TransportError: on network failure or a non-2xx status.
        """

    async def close(self) -> None:
        pass


class Transport:
    """Tries each strategy in order and returns the first body obtained.

    Only when every strategy has failed is a single TransportError raised,
    whose message lists each strategy's error code and description.
    """

    def __init__(self, strategies: Sequence[FetchStrategy]):
        if not strategies:
            raise ValueError("Transport needs at least one strategy.")
        self.strategies: List[FetchStrategy] = list(strategies)

    async def fetch_text(
        self,
        url: str,
        headers: Dict[str, str],
        validate: Optional[Callable[[str], Any]] = None,
    ) -> str:
        """Returns the first body that was fetched and, when given, accepted by
        ``validate``. A body rejected by ``validate`` counts as a failure of
        that strategy and the next one is tried.
        """
        failures: List[TransportError] = []
        for strategy in self.strategies:
            try:
                logger.debug(f"Fetching via {strategy.name}: {url}")
                text = await strategy.fetch_text(url, headers)
                if validate is not None:
                    _check_body(text, validate)
                if failures:
                    logger.info(
                        f"Fallback strategy '{strategy.name}' succeeded after {len(failures)} failure(s)."
                    )
                return text
            except TransportError as e:
                logger.warning(f"Strategy '{strategy.name}' failed [{e.code}]: {e}")
                failures.append(e)
            except Exception as e:
                logger.exception(f"Unexpected error in strategy '{strategy.name}': {e}")
                failures.append(TransportError(repr(e), code=type(e).__name__))

        combined = "; ".join(
            f"{strategy.name} [{error.code}]: {error}"
            for strategy, error in zip(self.strategies, failures)
        )
        raise TransportError(
            f"All fetch strategies failed: {combined}",
            code="+".join(error.code for error in failures),
            body=next((e.body for e in reversed(failures) if e.body), None),
        )

    async def close(self) -> None:
        for strategy in self.strategies:
            await strategy.close()


def _check_body(text: str, validate: Callable[[str], Any]) -> None:
    try:
        validate(text)
    except Exception as e:
        # Kept whole: this is the body that gets persisted for inspection
        raise TransportError(
            f"Malformed body: {e}", code="DECODE", body=text
        ) from e
