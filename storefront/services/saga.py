# storefront/services/saga.py
from typing import Any, Callable

from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class Saga:
    """
    Kroki z kompensacja zamiast jednej transakcji.
    Kompensacja zapisywana dopiero po sukcesie kroku, przy bledzie wolana w odwrotnej kolejnosci.

        with Saga("checkout") as saga:
            committed = saga.run(lambda: ledger.commit(lines), compensate=ledger.restock)
    """

    def __init__(self, name: str, before_compensate: Callable[[], Any] | None = None):
        self.name = name
        self.before_compensate = before_compensate
        self._compensations: list[tuple[str, Callable[[Any], Any], Any]] = []

    def run(self, step: str, action: Callable[[], Any], compensate: Callable[[Any], Any] | None = None):
        result = action()
        if compensate is not None:
            self._compensations.append((step, compensate, result))
        logger.info(f"[{self.name}] krok '{step}' OK")
        return result

    def compensate(self) -> tuple[int, int]:
        """Zwraca (wykonane, nieudane)."""
        if self.before_compensate is not None:
            self.before_compensate()

        done = 0
        failed = 0
        for step, compensation, result in reversed(self._compensations):
            try:
                compensation(result)
                done += 1
                logger.info(f"[{self.name}] kompensacja '{step}' OK")
            except Exception as e:
                failed += 1
                logger.error(f"ALERT: [{self.name}] kompensacja '{step}' nie powiodla sie: {e}")
                if self.before_compensate is not None:
                    self.before_compensate()
        self._compensations.clear()
        return done, failed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            logger.warning(f"[{self.name}] przerwana: {exc}")
            self.compensate()
        #wyjatek leci dalej
        return False
