"""Shared fixtures: order factory, fake collaborators and a frozen clock.

Environment variables are seeded before any application module is imported,
because settings singletons are read at import time.
"""

import io
import os

os.environ.setdefault("WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("STORE_JURISDICTION", "MH")
os.environ.setdefault("JOB_STORE", "memory")
os.environ.setdefault("ARTIFACT_BACKEND", "memory")
os.environ.setdefault("JOB_BATCH_DELAY_SECONDS", "0")
os.environ.setdefault("WEBHOOK_RETRY_DELAY_SECONDS", "0")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("COMMERCE_SHOP_DOMAIN", "demo-store.myshopify.com")
os.environ.setdefault("COMMERCE_ACCESS_TOKEN", "shpat_test_token")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfWriter

from gst.documents.invoice_html import PAGE_SECTION
from gst.documents.pdf_render import PdfDocumentRenderer
from gst.models.orders import OrderRecord
from gst.models.session import SessionContext
from gst.tax.enrichment import OrderTaxService

SHOP = "demo-store.myshopify.com"
TOKEN = "shpat_test_token"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeOrderProvider:
    """Serves orders from a dict; unknown ids are silently omitted."""

    def __init__(self, orders=()):
        self.orders = {order.id: order for order in orders}
        self.calls = []

    async def fetch_order(self, session, order_id):
        self.calls.append(("fetch_order", order_id))
        return self.orders.get(str(order_id))

    async def fetch_orders(self, session, order_ids):
        self.calls.append(("fetch_orders", list(order_ids)))
        return [self.orders[i] for i in order_ids if i in self.orders]

    async def fetch_orders_in_range(self, session, created_from, created_to, limit):
        self.calls.append(("fetch_orders_in_range", created_from, created_to, limit))
        matches = [
            order
            for order in self.orders.values()
            if created_from <= order.created_at <= created_to
        ]
        return sorted(matches, key=lambda o: o.created_at)[:limit]


class FakeRenderSession:
    def __init__(self, backend):
        self.backend = backend
        self.closed = False

    async def render_html(self, html, layout):
        if self.backend.fail:
            raise RuntimeError("render service crashed")
        self.backend.rendered.append(html)
        writer = PdfWriter()
        for _ in range(max(html.count(PAGE_SECTION), 1)):
            writer.add_blank_page(width=595, height=842)
        buffer = io.BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    async def close(self):
        self.closed = True


class FakeRenderBackend:
    """Produces one blank PDF page per invoice page section."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sessions: list[FakeRenderSession] = []
        self.rendered: list[str] = []

    async def open_session(self):
        session = FakeRenderSession(self)
        self.sessions.append(session)
        return session


def build_order(
    order_id="1001",
    total="1500.00",
    province_code="MH",
    province="Maharashtra",
    created_at=None,
    line_items=None,
    billing_province_code=None,
    billing_province=None,
    **overrides,
) -> OrderRecord:
    amount = Decimal(total)
    raw = {
        "id": order_id,
        "name": f"#{order_id}",
        "created_at": created_at or datetime(2024, 6, 10, 9, 30, tzinfo=timezone.utc),
        "total_price": str(amount),
        "subtotal_price": str(amount),
        "email": "asha@example.com",
        "financial_status": "paid",
        "customer": {"id": 77, "first_name": "Asha", "last_name": "Rao"},
        "shipping_address": {
            "name": "Asha Rao",
            "address1": "12 MG Road",
            "city": "Pune",
            "province": province,
            "province_code": province_code,
            "zip": "411001",
            "country": "India",
        },
        "line_items": line_items
        if line_items is not None
        else [
            {
                "id": f"{order_id}-1",
                "title": "Cotton T-Shirt",
                "variant_title": "M / Black",
                "quantity": 1,
                "price": str(amount),
            }
        ],
    }
    if billing_province_code or billing_province:
        raw["billing_address"] = {
            "name": "Asha Rao",
            "address1": "4 Residency Road",
            "city": "Bengaluru",
            "province": billing_province,
            "province_code": billing_province_code,
            "zip": "560025",
            "country": "India",
        }
    raw.update(overrides)
    return OrderRecord.model_validate(raw)


@pytest.fixture
def make_order():
    return build_order


@pytest.fixture
def session():
    return SessionContext(shop=SHOP, access_token=TOKEN, seller_jurisdiction="MH")


@pytest.fixture
def tax_service():
    return OrderTaxService()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def render_backend():
    return FakeRenderBackend()


@pytest.fixture
def order_provider():
    return FakeOrderProvider(
        [
            build_order("1001", "1500.00"),
            build_order("1002", "800.00", province_code="KA", province="Karnataka"),
            build_order("1003", "2400.00", province_code="DL", province="Delhi"),
        ]
    )


@pytest.fixture
def auth_headers():
    return {"X-Shop-Domain": SHOP, "Authorization": f"Bearer {TOKEN}"}


@pytest.fixture
def client(order_provider, render_backend):
    """Application client with fake commerce and render collaborators."""
    from main import app

    with TestClient(app) as test_client:
        renderer = PdfDocumentRenderer(render_backend)
        app.state.order_provider = order_provider
        app.state.pdf_renderer = renderer
        app.state.orchestrator.pdf_renderer = renderer
        yield test_client
