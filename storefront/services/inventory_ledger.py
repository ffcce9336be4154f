# storefront/services/inventory_ledger.py
from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import InsufficientStock, ProductUnavailable
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class StockLine(Protocol):
    product_id: int
    quantity: int


@dataclass(frozen=True)
class CommittedLine:
    product_id: int
    quantity: int


class InventoryLedger:
    """
    Stan magazynowy produktow:
    - walidacja dostepnosci (bez efektow ubocznych)
    - commit: warunkowy atomowy decrement per linia, przy bledzie restock juz zdjetych linii
    - restock: bezwarunkowy increment (anulowanie, rollback)
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def validate_availability(self, lines: Iterable[StockLine]) -> dict[int, ProductModel]:
        lines = list(lines)
        products = self.repo.get_products(line.product_id for line in lines)

        #najpierw dostepnosc wszystkich produktow, potem ilosci
        for line in lines:
            product = products.get(line.product_id)
            if product is None or not product.is_active:
                raise ProductUnavailable(
                    line.product_id, product.name if product is not None else None
                )

        for line in lines:
            product = products[line.product_id]
            if product.stock < line.quantity:
                raise InsufficientStock(product.id, product.name, product.stock)

        return products

    def commit(self, lines: Iterable[StockLine]) -> list[CommittedLine]:
        committed: list[CommittedLine] = []

        try:
            for line in lines:
                rowcount = self.repo.decrement_stock(line.product_id, line.quantity)
                if rowcount == 0:
                    self._raise_for_failed_decrement(line)
                self.repo.commit()
                committed.append(CommittedLine(line.product_id, line.quantity))
                logger.info(f"Stock product {line.product_id}: -{line.quantity}")
        except Exception as e:
            self.repo.rollback()
            if committed:
                logger.warning(
                    f"Commit magazynu przerwany ({e}), cofam {len(committed)} linii"
                )
                try:
                    self.restock(committed)
                except Exception as restock_error:
                    self.repo.rollback()
                    logger.error(
                        f"ALERT: nie cofnieto zdjetego stanu {committed} po bledzie commitu: {restock_error}"
                    )
            #zawsze pierwotny blad (InsufficientStock / ProductUnavailable)
            raise

        return committed

    def restock(self, lines: Iterable[StockLine]):
        for line in lines:
            rowcount = self.repo.increment_stock(line.product_id, line.quantity)
            if rowcount == 0:
                logger.warning(f"Restock: produkt {line.product_id} nie istnieje w katalogu")
            else:
                logger.info(f"Stock product {line.product_id}: +{line.quantity}")
        self.repo.commit()

    def _raise_for_failed_decrement(self, line: StockLine):
        product = self.repo.get_product(line.product_id)
        if product is None or not product.is_active:
            raise ProductUnavailable(
                line.product_id, product.name if product is not None else None
            )
        raise InsufficientStock(product.id, product.name, product.stock)
