import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow():
    return datetime.datetime.utcnow()


class Company(Base):
    __tablename__ = "companies"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    sites = relationship("Site", back_populates="company", cascade="all, delete-orphan")


class Site(Base):
    __tablename__ = "sites"
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    company = relationship("Company", back_populates="sites")


class Profile(Base):
    __tablename__ = "profiles"
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="SET NULL"))
    email = Column(String, unique=True, nullable=False)
    full_name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="staff")
    password = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Supplier(Base):
    __tablename__ = "suppliers"
    __table_args__ = (Index("idx_suppliers_company_id", "company_id"),)
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    order_email = Column(String)
    minimum_order_value = Column(Numeric(10, 2))
    lead_time_days = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True)
    variants = relationship("ProductVariant", back_populates="supplier")


class StockItem(Base):
    __tablename__ = "stock_items"
    __table_args__ = (Index("idx_stock_items_company_id", "company_id"),)
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    stock_unit = Column(String, nullable=False, default="ea")
    shelf_life_days = Column(Integer)
    is_perishable = Column(Boolean, nullable=False, default=False)
    reorder_point = Column(Numeric(10, 2))
    par_level = Column(Numeric(10, 2))
    avg_daily_usage = Column(Numeric(10, 2), nullable=False, default=0)
    days_until_reorder = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True)
    stock_levels = relationship(
        "StockLevel", back_populates="stock_item", cascade="all, delete-orphan"
    )
    variants = relationship(
        "ProductVariant", back_populates="stock_item", cascade="all, delete-orphan"
    )


class StockLevel(Base):
    __tablename__ = "stock_levels"
    __table_args__ = (
        UniqueConstraint("stock_item_id", "site_id", name="uq_stock_levels_item_site"),
    )
    id = Column(Integer, primary_key=True)
    stock_item_id = Column(
        Integer, ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False
    )
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"))
    quantity = Column(Numeric(10, 2), nullable=False, default=0)
    stock_item = relationship("StockItem", back_populates="stock_levels")


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        Index("idx_product_variants_supplier_item", "supplier_id", "stock_item_id"),
    )
    id = Column(Integer, primary_key=True)
    stock_item_id = Column(
        Integer, ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id = Column(
        Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False
    )
    unit_price = Column(Numeric(10, 2))
    is_preferred = Column(Boolean, nullable=False, default=False)
    is_approved = Column(Boolean, nullable=False, default=True)
    is_discontinued = Column(Boolean, nullable=False, default=False)
    stock_item = relationship("StockItem", back_populates="variants")
    supplier = relationship("Supplier", back_populates="variants")


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"
    __table_args__ = (Index("idx_purchase_orders_company_id", "company_id"),)
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="SET NULL"))
    order_number = Column(String, nullable=False, unique=True)
    supplier_id = Column(
        Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False
    )
    order_date = Column(Date, nullable=False)
    expected_delivery = Column(Date)
    status = Column(String, nullable=False, default="draft")
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    notes = Column(Text)
    created_by = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"))
    sent_at = Column(DateTime)
    approved_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
    supplier = relationship("Supplier")
    lines = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.id",
    )


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"
    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(
        Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False
    )
    product_variant_id = Column(
        Integer, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False
    )
    quantity_ordered = Column(Numeric(10, 2), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)
    line_total = Column(Numeric(10, 2), nullable=False, default=0)
    quantity_received = Column(Numeric(10, 2), nullable=False, default=0)
    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    variant = relationship("ProductVariant")


class Delivery(Base):
    __tablename__ = "deliveries"
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="SET NULL"))
    supplier_id = Column(
        Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False
    )
    delivery_date = Column(Date, nullable=False)
    invoice_number = Column(String)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    vat_total = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default="confirmed")
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    lines = relationship(
        "DeliveryLine", back_populates="delivery", cascade="all, delete-orphan"
    )


class DeliveryLine(Base):
    __tablename__ = "delivery_lines"
    id = Column(Integer, primary_key=True)
    delivery_id = Column(
        Integer, ForeignKey("deliveries.id", ondelete="CASCADE"), nullable=False
    )
    stock_item_id = Column(
        Integer, ForeignKey("stock_items.id", ondelete="RESTRICT"), nullable=False
    )
    description = Column(String)
    quantity_ordered = Column(Numeric(10, 2), nullable=False)
    quantity_received = Column(Numeric(10, 2), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)
    line_total = Column(Numeric(10, 2), nullable=False, default=0)
    match_status = Column(String, nullable=False, default="matched")
    delivery = relationship("Delivery", back_populates="lines")


class StockMovement(Base):
    __tablename__ = "stock_movements"
    __table_args__ = (Index("idx_stock_movements_item", "stock_item_id"),)
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    stock_item_id = Column(
        Integer, ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False
    )
    movement_type = Column(String, nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False)
    unit_cost = Column(Numeric(10, 2))
    ref_type = Column(String)
    ref_id = Column(Integer)
    to_site_id = Column(Integer, ForeignKey("sites.id", ondelete="SET NULL"))
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class OrderBookCustomer(Base):
    __tablename__ = "order_book_customers"
    id = Column(Integer, primary_key=True)
    company_id = Column(
        Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"))
    business_name = Column(String, nullable=False)
    contact_name = Column(String)
    email = Column(String)
    minimum_order_value = Column(Numeric(10, 2))


class OrderBookProduct(Base):
    __tablename__ = "order_book_products"
    id = Column(Integer, primary_key=True)
    supplier_id = Column(
        Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(String, nullable=False)
    category = Column(String)
    unit = Column(String, nullable=False, default="ea")
    base_price = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class OrderBookCustomerPricing(Base):
    __tablename__ = "order_book_customer_pricing"
    __table_args__ = (
        UniqueConstraint(
            "customer_id", "product_id", name="uq_customer_pricing_customer_product"
        ),
    )
    id = Column(Integer, primary_key=True)
    customer_id = Column(
        Integer,
        ForeignKey("order_book_customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id = Column(
        Integer,
        ForeignKey("order_book_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    custom_price = Column(Numeric(10, 2), nullable=False)


class OrderBookOrder(Base):
    __tablename__ = "order_book_orders"
    # Not unique: duplicates exist in the wild and are cleaned up on upsert.
    __table_args__ = (
        Index("idx_order_book_orders_customer_date", "customer_id", "delivery_date"),
    )
    id = Column(Integer, primary_key=True)
    supplier_id = Column(
        Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False
    )
    customer_id = Column(
        Integer,
        ForeignKey("order_book_customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    delivery_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="draft")
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"))
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
    customer = relationship("OrderBookCustomer")


class OrderBookOrderItem(Base):
    __tablename__ = "order_book_order_items"
    __table_args__ = (Index("idx_order_book_order_items_order_id", "order_id"),)
    id = Column(Integer, primary_key=True)
    order_id = Column(
        Integer,
        ForeignKey("order_book_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id = Column(
        Integer,
        ForeignKey("order_book_products.id", ondelete="SET NULL"),
    )
    quantity = Column(Numeric(10, 2), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    line_total = Column(Numeric(10, 2), nullable=False)
    product = relationship("OrderBookProduct")
