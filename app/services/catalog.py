"""Product lookups used to snapshot order lines at placement time."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Protocol

from sqlalchemy.orm import Session

from app.models import Product


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    name: str
    price: Decimal
    image: Optional[str] = None
    sizes: List[str] = field(default_factory=list)


class ProductCatalog(Protocol):
    def get_products(self, product_ids: Iterable[str]) -> Dict[str, ProductSnapshot]:
        """Active products keyed by id. Unknown ids are simply absent."""
        ...


class SqlProductCatalog:
    def __init__(self, db: Session):
        self.db = db

    def get_products(self, product_ids: Iterable[str]) -> Dict[str, ProductSnapshot]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = (
            self.db.query(Product)
            .filter(Product.id.in_(ids), Product.is_active.is_(True))
            .all()
        )
        return {
            p.id: ProductSnapshot(
                id=p.id,
                name=p.name,
                price=Decimal(str(p.price)),
                image=p.image,
                sizes=list(p.sizes or []),
            )
            for p in rows
        }
