# fulfillment/repos/catalog_repo.py
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.data.models.catalog import MaterialModel, ProductFileModel, ProductModel


class CatalogRepo:
    """
    Odczyt katalogu (tylko read). Zwraca wiersze razem z flaga is_active,
    decyzja co z nieaktywnymi nalezy do serwisu.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id, populate_existing=True)

    def get_material(self, material_id: int, product_id: int) -> MaterialModel | None:
        return self.db.execute(
            select(MaterialModel)
            .where(
                MaterialModel.id == material_id,
                MaterialModel.product_id == product_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_file(self, file_id: int) -> ProductFileModel | None:
        return self.db.get(ProductFileModel, file_id)

    def list_files_for_products(self, product_ids: Iterable[int]) -> List[ProductFileModel]:
        ids = list(product_ids)
        if not ids:
            return []
        return list(
            self.db.execute(
                select(ProductFileModel)
                .where(ProductFileModel.product_id.in_(ids))
                .order_by(ProductFileModel.id)
            ).scalars().all()
        )
