# reorder_suggestions/models.py
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Boolean, ForeignKey, Text, Index
from sqlalchemy.orm import backref, declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

# Sales order states that count as demand
COUNTED_SALES_STATUSES = ('completed', 'processing')

# Purchase order states that still represent an open order
OPEN_PURCHASE_ORDER_STATUSES = ('pending', 'ordered', 'on_the_way_in')


class Supplier(Base):
    """Supplier master data as maintained by the inventory system."""
    __tablename__ = 'supplier'

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    status = Column(String(20), default='publish')
    lead_time = Column(Integer)
    orders_per_year = Column(Integer)
    po_note = Column(Text)

    products = relationship("Product", back_populates="supplier")
    custom_closed_periods = relationship(
        "SupplierClosedPeriod", back_populates="supplier",
        order_by="SupplierClosedPeriod.id", cascade="all, delete-orphan"
    )
    preset_links = relationship(
        "SupplierPresetLink", back_populates="supplier",
        order_by="SupplierPresetLink.position", cascade="all, delete-orphan"
    )
    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")


class ClosedPeriodPreset(Base):
    """Globally defined recurring closure, e.g. a national holiday week."""
    __tablename__ = 'closed_period_preset'

    id = Column(String(50), primary_key=True)
    name = Column(String(100))
    start_date = Column(String(5), nullable=False)  # DD-MM
    end_date = Column(String(5), nullable=False)    # DD-MM


class SupplierPresetLink(Base):
    __tablename__ = 'supplier_preset_link'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey('supplier.id'), nullable=False)
    preset_id = Column(String(50), nullable=False)
    position = Column(Integer, default=0)

    supplier = relationship("Supplier", back_populates="preset_links")


class SupplierClosedPeriod(Base):
    """Closure defined for a single supplier."""
    __tablename__ = 'supplier_closed_period'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey('supplier.id'), nullable=False)
    name = Column(String(100))
    start_date = Column(String(5))  # DD-MM
    end_date = Column(String(5))    # DD-MM

    supplier = relationship("Supplier", back_populates="custom_closed_periods")


class Product(Base):
    """Product with its stock position; variations point at their parent."""
    __tablename__ = 'product'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(100))
    status = Column(String(20), default='publish')
    supplier_id = Column(Integer, ForeignKey('supplier.id'))
    parent_id = Column(Integer, ForeignKey('product.id'))
    manages_stock = Column(Boolean, default=True)
    stock_quantity = Column(Integer, default=0)
    inbound_stock = Column(Integer, default=0)
    minimum_order_quantity = Column(Integer, default=1)
    purchase_price = Column(Float)
    regular_price = Column(Float)
    created_on = Column(Date)

    # Restock status written by suggestion runs
    needs_reorder = Column(Boolean, default=False)
    suggested_qty = Column(Integer, default=0)
    restock_updated = Column(DateTime)

    supplier = relationship("Supplier", back_populates="products")
    variations = relationship("Product", backref=backref("parent", remote_side=[id]))


class SalesOrder(Base):
    __tablename__ = 'sales_order'

    id = Column(Integer, primary_key=True)
    status = Column(String(20), nullable=False, default='completed')
    order_date = Column(DateTime, nullable=False, default=func.now())

    lines = relationship("SalesOrderLine", back_populates="order", cascade="all, delete-orphan")


class SalesOrderLine(Base):
    __tablename__ = 'sales_order_line'

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('sales_order.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    quantity = Column(Float, default=0.0)

    order = relationship("SalesOrder", back_populates="lines")

    __table_args__ = (
        Index('ix_sales_order_line_product', 'product_id'),
    )


class PurchaseOrder(Base):
    __tablename__ = 'purchase_order'

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey('supplier.id'), nullable=False)
    status = Column(String(20), nullable=False, default='pending')
    created_on = Column(Date, nullable=False)
    expected_on = Column(Date)
    description = Column(Text)

    supplier = relationship("Supplier", back_populates="purchase_orders")
    lines = relationship("PurchaseOrderLine", back_populates="purchase_order", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_purchase_order_supplier_created', 'supplier_id', 'created_on'),
    )


class PurchaseOrderLine(Base):
    __tablename__ = 'purchase_order_line'

    id = Column(Integer, primary_key=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_order.id'), nullable=False)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, default=0.0)
    reason = Column(String(30))

    purchase_order = relationship("PurchaseOrder", back_populates="lines")
