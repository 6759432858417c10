from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from opsdesk.core.db import Base, SessionLocal, engine, utcnow
from opsdesk.core.security import hash_password
from opsdesk.models import (
    Channel,
    CreditNote,
    Currency,
    Customer,
    InventoryItem,
    Invoice,
    InvoiceItem,
    Order,
    PurchaseOrder,
    ReturnRequest,
    Supplier,
    User,
)
from opsdesk.models.enums import (
    ChannelType,
    InvoiceStatus,
    OrderStatus,
    PaymentStatus,
    PurchaseOrderStatus,
    ReturnStatus,
    ReturnType,
    UserRole,
)
from opsdesk.services.invoicing import invoice_totals, price_line
from opsdesk.services.lifecycle import ORDER_LIFECYCLE
from opsdesk.services.purchasing import price_po_items


def reset_db(db: Session):
    # Drops & recreates all tables
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def seed_users(db: Session):
    db.add_all([
        User(
            email="owner@example.com",
            hashed_password=hash_password("owner-pass-123"),
            display_name="Store Owner",
            company_name="Corner Goods",
            role=UserRole.OWNER,
        ),
        User(
            email="viewer@example.com",
            hashed_password=hash_password("viewer-pass-123"),
            display_name="Accountant",
            company_name="Corner Goods",
            role=UserRole.VIEWER,
        ),
    ])


def seed_inventory(db: Session):
    rows = [
        # name, sku, category, qty, min, price
        ("Ceramic Mug 350ml", "MUG-350", "Kitchen", 42, 10, "8.50"),
        ("Bamboo Cutting Board", "BRD-BMB", "Kitchen", 4, 10, "21.00"),
        ("Linen Tea Towel", "TWL-LIN", "Kitchen", 0, 6, "6.75"),
        ("Soy Candle - Cedar", "CND-CED", "Home", 5, None, "14.00"),
        ("Soy Candle - Fig", "CND-FIG", "Home", 6, None, "14.00"),
        ("Wool Throw Blanket", "BLK-WOL", "Home", 9, 3, "79.00"),
        ("Notebook A5 Dotted", "NTB-A5D", "Stationery", 2, 15, "5.25"),
    ]
    db.add_all([
        InventoryItem(name=n, sku=s, category=c, quantity=q, min_quantity=m, price=Decimal(p))
        for n, s, c, q, m, p in rows
    ])


def seed_channels(db: Session) -> list[Channel]:
    channels = [
        Channel(name="Corner Goods Shopify", type=ChannelType.SHOPIFY, store_url="https://corner-goods.myshopify.com"),
        Channel(name="Market Stall POS", type=ChannelType.POS, sync_enabled=False),
    ]
    db.add_all(channels)
    db.flush()
    return channels


def _order_at(stage: OrderStatus, number: int, channel: Channel, **fields) -> Order:
    start = utcnow() - timedelta(days=6 - number)
    order = Order(order_number=f"ORD-DEMO-{number:03d}", status=stage, order_date=start,
                  channel_id=channel.id, **fields)
    # stamp every stage up to and including ``stage``, an hour apart
    for i, s in enumerate(ORDER_LIFECYCLE.stages[1:ORDER_LIFECYCLE.index(stage) + 1], start=1):
        setattr(order, s.stamp, start + timedelta(hours=i))
    return order


def seed_orders(db: Session, channels: list[Channel]) -> list[Order]:
    shop, pos = channels
    orders = [
        _order_at(OrderStatus.RECEIVED, 1, shop, customer_name="Amara Okafor", customer_email="amara@example.com",
                  total_amount=Decimal("29.00"), shipping_address="12 Elm St", shipping_city="Leeds"),
        _order_at(OrderStatus.CONFIRMED, 2, shop, customer_name="Jon Lindqvist", customer_email="jon@example.com",
                  total_amount=Decimal("79.00"), payment_status=PaymentStatus.PAID),
        _order_at(OrderStatus.PACKED, 3, shop, customer_name="Priya Raman", customer_email="priya@example.com",
                  total_amount=Decimal("42.50"), payment_status=PaymentStatus.PAID),
        _order_at(OrderStatus.SHIPPED, 4, shop, customer_name="Luis Ortega", customer_email="luis@example.com",
                  total_amount=Decimal("14.00"), payment_status=PaymentStatus.PAID,
                  carrier="ups", tracking_number="1Z999AA10123456784"),
        _order_at(OrderStatus.DELIVERED, 5, pos, customer_name="Mei Chen", customer_email="mei@example.com",
                  total_amount=Decimal("100.00"), payment_status=PaymentStatus.PAID,
                  shipping_address="4 Harbour Rd", shipping_city="Bristol"),
    ]
    db.add_all(orders)
    db.flush()
    return orders


def seed_returns(db: Session, orders: list[Order]):
    delivered = orders[-1]
    db.add(ReturnRequest(
        return_number="RET-DEMO-001",
        order_id=delivered.id,
        customer_name=delivered.customer_name,
        customer_email=delivered.customer_email,
        return_type=ReturnType.REFUND,
        status=ReturnStatus.REQUESTED,
        reason="Blanket arrived with a pulled thread",
        refund_amount=Decimal("79.00"),
        pickup_address="4 Harbour Rd, Bristol",
    ))



def seed_currencies(db: Session):
    db.add_all([
        Currency(code="USD", name="US Dollar", symbol="$", exchange_rate=Decimal("1")),
        Currency(code="EUR", name="Euro", symbol="€", exchange_rate=Decimal("0.92")),
        Currency(code="GBP", name="British Pound", symbol="£", exchange_rate=Decimal("0.79")),
    ])


def seed_customers(db: Session) -> list[Customer]:
    customers = [
        Customer(contact_name="Hana Sato", company_name="Sato Interiors", email="hana@sato-interiors.example",
                 city="Manchester", country="UK", currency_code="GBP", payment_terms=14),
        Customer(contact_name="Diego Alvarez", email="diego@example.com", city="Austin", country="US"),
    ]
    db.add_all(customers)
    db.flush()
    return customers


def seed_invoices(db: Session, customers: list[Customer]):
    today = utcnow().date()
    trade = customers[0]
    lines = [
        {"description": "Wool Throw Blanket", "quantity": 6, "unit_price": Decimal("79.00"),
         "discount_percent": Decimal("10"), "tax_percent": Decimal("20")},
        {"description": "Ceramic Mug 350ml", "quantity": 24, "unit_price": Decimal("8.50"),
         "discount_percent": Decimal("0"), "tax_percent": Decimal("20")},
    ]
    invoice = Invoice(
        invoice_number="INV-DEMO-001", customer_id=trade.id, status=InvoiceStatus.SENT,
        issue_date=today - timedelta(days=3), due_date=today + timedelta(days=trade.payment_terms - 3),
        currency_code=trade.currency_code, exchange_rate=Decimal("0.79"),
        **invoice_totals(lines),
    )
    db.add(invoice)
    db.flush()
    db.add_all([
        InvoiceItem(invoice_id=invoice.id, line_total=price_line(
            line["quantity"], line["unit_price"], line["discount_percent"], line["tax_percent"]).line_total, **line)
        for line in lines
    ])
    db.add(CreditNote(
        credit_note_number="CN-DEMO-001", customer_id=trade.id, invoice_id=invoice.id, issue_date=today,
        reason="Two mugs chipped in transit", currency_code=trade.currency_code,
        amount=Decimal("20.40"), applied_amount=Decimal("0"), balance=Decimal("20.40"),
    ))


def seed_suppliers(db: Session):
    mill = Supplier(name="Highland Wool Mill", contact_person="Fiona Grant", email="orders@highlandwool.example",
                    country="UK", rating=5, products=["Wool Throw Blanket"], payment_terms="Net 30")
    potter = Supplier(name="Riverside Pottery", contact_person="Sam Reid", country="UK", rating=4,
                      products=["Ceramic Mug 350ml"], payment_terms="Net 15")
    db.add_all([mill, potter])
    db.flush()
    items, total = price_po_items([{"item_name": "Wool Throw Blanket", "quantity": 10, "unit_price": "41.00"}])
    db.add(PurchaseOrder(
        order_number="PO-DEMO-001", supplier_id=mill.id, supplier_name=mill.name, items=items,
        order_date=utcnow().date(), expected_date=utcnow().date() + timedelta(days=10),
        status=PurchaseOrderStatus.CONFIRMED, total_amount=total,
    ))


def main():
    db = SessionLocal()
    try:
        reset_db(db)
        seed_users(db)
        seed_inventory(db)
        channels = seed_channels(db)
        orders = seed_orders(db, channels)
        seed_returns(db, orders)
        seed_currencies(db)
        seed_invoices(db, seed_customers(db))
        seed_suppliers(db)
        db.commit()

        print("Seed complete.")
        print("Sign in as owner@example.com / owner-pass-123 (or viewer@example.com / viewer-pass-123)")
    finally:
        db.close()


if __name__ == "__main__":
    main()
