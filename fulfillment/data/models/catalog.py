# fulfillment/data/models/catalog.py
# katalog jest tylko czytany przez ten serwis
from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from fulfillment.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    base_price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    materials = relationship("MaterialModel", back_populates="product")
    files = relationship("ProductFileModel", back_populates="product")


class MaterialModel(Base):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    product = relationship("ProductModel", back_populates="materials")


class ProductFileModel(Base):
    __tablename__ = "product_files"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    # klucz S3, nigdy nie wychodzi do klienta
    storage_key = Column(String, nullable=False)

    product = relationship("ProductModel", back_populates="files")
