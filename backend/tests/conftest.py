import os
import tempfile

# point the app at a throwaway database before anything imports app.config
_tmpdir = tempfile.mkdtemp(prefix="stockroom-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["RESET_DB"] = "1"

from datetime import datetime, timezone
from decimal import Decimal

from app.db import SessionLocal
from app.models.product import Product
from app.models.product_group import ProductGroup
from app.models.stock_adjustment import StockAdjustment
from app.models.user_account import Role, UserAccount
from app.services.session_service import SessionContext, hash_password

PASSWORD = "secret-pass"


def seed_user(email, role=Role.USER, active=True, name=None):
    db = SessionLocal()
    try:
        u = UserAccount(
            name=name or email.split("@")[0],
            email=email,
            password_hash=hash_password(PASSWORD),
            role=role,
            is_active=active,
        )
        db.add(u)
        db.commit()
        return u.uid
    finally:
        db.close()


def seed_group(name="Cookware", description=None):
    db = SessionLocal()
    try:
        g = ProductGroup(name=name, description=description)
        db.add(g)
        db.commit()
        return g.id
    finally:
        db.close()


def seed_product(group_id, name="Steel Pot", stock=50, cartons=5, unit="pcs", mrp="499.00"):
    db = SessionLocal()
    try:
        now = datetime.now(timezone.utc)
        p = Product(
            group_id=group_id,
            name=name,
            mrp=Decimal(mrp),
            stock=stock,
            cartons=cartons,
            unit=unit,
            description="",
            created_at=now,
            updated_at=now,
        )
        db.add(p)
        db.commit()
        return p.id
    finally:
        db.close()


def load_product(product_id):
    db = SessionLocal()
    try:
        p = db.query(Product).filter(Product.id == product_id).first()
        return {"stock": p.stock, "cartons": p.cartons, "updated_at": p.updated_at}
    finally:
        db.close()


def audit_count(product_id):
    db = SessionLocal()
    try:
        return db.query(StockAdjustment).filter(StockAdjustment.product_id == product_id).count()
    finally:
        db.close()


def session_for(uid, role=Role.ADMIN):
    return SessionContext(token="test-token", uid=uid, email=f"{uid}@test", name=uid, role=role)


def login(client, email):
    res = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['token']}"}
