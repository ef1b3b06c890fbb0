"""ORM Models — SQLAlchemy declarative models for the SQL store and ledger backends.

Invariants:
    - All models inherit from Base (db/base.py)
    - Natural primary keys: (x, y) for pixels, user for quota, proof_id for receipts

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / alembic
"""

from castcanvas.models.pixel import PixelRow  # noqa: F401
from castcanvas.models.quota_record import QuotaRecordRow  # noqa: F401
from castcanvas.models.purchase_receipt import PurchaseReceiptRow  # noqa: F401
