from decimal import Decimal

import pytest

from billbook.entities import Invoice, InvoiceItem, Payment, STATUS_OVERDUE, STATUS_PAID, STATUS_PENDING
from billbook.services import invoice_service, payment_service
from billbook.services.document_store import PersistenceError
from billbook.services.inventory_service import InventoryError
from billbook.services.invoice_service import InvoiceError, InvoiceNotFoundError
from billbook.services.repository import BillingRepository
from billbook.services.settings_service import BillingPolicy
from billbook.services.tax_service import TaxError

from conftest import FailingStore, _seed


def _line(product_id, qty, rate, gst="18"):
    return InvoiceItem(
        product_id=product_id,
        description=product_id or "ad hoc",
        quantity=Decimal(qty),
        rate=Decimal(rate),
        gst_rate=Decimal(gst) if gst is not None else None,
    )


def _invoice(customer_id="c1", status=STATUS_PENDING, items=None, **kw):
    return Invoice(
        id=None,
        customer_id=customer_id,
        items=items if items is not None else [_line("p1", "2", "500"), _line("p2", "1", "1000")],
        status=status,
        **kw,
    )


def _reloaded(repo):
    return BillingRepository(repo.store, namespace=repo.namespace).load()


def test_create_credit_invoice_then_payment(repo):
    created = invoice_service.create_invoice(repo, _invoice())

    assert created.subtotal == Decimal("2000")
    assert created.total_cgst == Decimal("180")
    assert created.total_sgst == Decimal("180")
    assert created.total == Decimal("2360")
    assert repo.customers["c1"].balance == Decimal("2360")

    payment_service.record_payment(repo, Payment(id=None, customer_id="c1", amount=Decimal("1000"), mode="CASH"))
    assert repo.customers["c1"].balance == Decimal("1360")
    assert repo.discrepancies() == []


def test_create_snapshots_customer_and_defaults(repo):
    created = invoice_service.create_invoice(repo, _invoice(customer_id="c2", date="2026-03-01"))

    assert created.customer_name == "Meera Traders"
    assert created.customer_state == "Karnataka"
    assert created.supplier_gstin == "07ABCDE1234F1Z5"
    assert created.due_date == "2026-03-31"
    assert created.invoice_number == "INV-2026-0001"
    assert created.total_igst == Decimal("360")
    assert created.created_at is not None


def test_create_persists_everything(repo):
    created = invoice_service.create_invoice(repo, _invoice())
    fresh = _reloaded(repo)

    assert fresh.invoices[created.id].total == Decimal("2360")
    assert fresh.products["p1"].stock == Decimal("8")
    assert fresh.products["p2"].stock == Decimal("49")
    assert fresh.customers["c1"].balance == Decimal("2360")
    assert fresh.customers["c1"].notifications[0].title == "New Invoice Generated"


def test_paid_invoice_leaves_balance_but_moves_stock(repo):
    invoice_service.create_invoice(repo, _invoice(status=STATUS_PAID))

    assert repo.customers["c1"].balance == 0
    assert repo.products["p1"].stock == Decimal("8")


def test_invoice_numbers_increment(repo):
    first = invoice_service.create_invoice(repo, _invoice(date="2026-01-05"))
    second = invoice_service.create_invoice(repo, _invoice(date="2026-02-05"))
    next_year = invoice_service.create_invoice(repo, _invoice(date="2027-01-01"))

    assert first.invoice_number == "INV-2026-0001"
    assert second.invoice_number == "INV-2026-0002"
    assert next_year.invoice_number == "INV-2027-0001"


def test_duplicate_supplied_number_is_allowed(repo, caplog):
    invoice_service.create_invoice(repo, _invoice(invoice_number="X-1"))
    with caplog.at_level("WARNING"):
        invoice_service.create_invoice(repo, _invoice(invoice_number="X-1"))

    assert len([i for i in repo.invoices.values() if i.invoice_number == "X-1"]) == 2
    assert "already used" in caplog.text


def test_create_then_delete_restores_state(repo):
    created = invoice_service.create_invoice(repo, _invoice())
    invoice_service.delete_invoice(repo, created.id)

    fresh = _reloaded(repo)
    assert fresh.products["p1"].stock == Decimal("10")
    assert fresh.products["p2"].stock == Decimal("50")
    assert fresh.customers["c1"].balance == 0
    assert created.id not in fresh.invoices


def test_update_equals_delete_then_create(repo):
    created = invoice_service.create_invoice(repo, _invoice())
    replacement = _invoice(customer_id="c2", items=[_line("p1", "5", "100")])
    replacement.id = created.id
    invoice_service.update_invoice(repo, replacement)

    # Same outcome built the long way on a second book
    other = _seed(BillingRepository(FailingStore(fail_after=10_000)))
    a = invoice_service.create_invoice(other, _invoice())
    invoice_service.delete_invoice(other, a.id)
    invoice_service.create_invoice(other, _invoice(customer_id="c2", items=[_line("p1", "5", "100")]))

    for pid in ("p1", "p2"):
        assert repo.products[pid].stock == other.products[pid].stock
    for cid in ("c1", "c2"):
        assert repo.customers[cid].balance == other.customers[cid].balance
    assert repo.customers["c1"].balance == 0
    assert repo.customers["c2"].balance == Decimal("590")
    assert repo.discrepancies() == []


def test_update_keeps_identity(repo):
    created = invoice_service.create_invoice(repo, _invoice())
    replacement = _invoice(status=STATUS_PAID)
    replacement.id = created.id
    updated = invoice_service.update_invoice(repo, replacement)

    assert updated.id == created.id
    assert updated.invoice_number == created.invoice_number
    assert updated.created_at == created.created_at
    assert repo.customers["c1"].balance == 0
    assert repo.products["p1"].stock == Decimal("8")


def test_update_missing_invoice(repo):
    replacement = _invoice()
    replacement.id = "nope"
    with pytest.raises(InvoiceNotFoundError):
        invoice_service.update_invoice(repo, replacement)


def test_delete_missing_invoice(repo):
    with pytest.raises(InvoiceNotFoundError):
        invoice_service.delete_invoice(repo, "nope")


def test_services_stock_never_changes(repo):
    created = invoice_service.create_invoice(repo, _invoice(items=[_line("svc", "3", "250")]))
    assert repo.products["svc"].stock == 0

    replacement = _invoice(items=[_line("svc", "7", "250")])
    replacement.id = created.id
    invoice_service.update_invoice(repo, replacement)
    assert repo.products["svc"].stock == 0

    invoice_service.delete_invoice(repo, created.id)
    assert repo.products["svc"].stock == 0
    assert _reloaded(repo).products["svc"].stock == 0


def test_deleted_product_line_is_ad_hoc(repo):
    created = invoice_service.create_invoice(repo, _invoice(items=[_line("p1", "1", "500")]))
    repo.remove_product("p1")
    invoice_service.delete_invoice(repo, created.id)
    assert "p1" not in _reloaded(repo).products


def test_deleted_customer_is_skipped(repo):
    created = invoice_service.create_invoice(repo, _invoice())
    del repo.customers["c1"]
    invoice_service.delete_invoice(repo, created.id)
    assert created.id not in repo.invoices


@pytest.mark.parametrize("invoice,message", [
    (_invoice(customer_id="ghost"), "Customer not found"),
    (_invoice(items=[]), "at least one item"),
    (_invoice(status=STATUS_OVERDUE), "Invalid status"),
    (_invoice(items=[_line("p1", "1", "10", gst="150")]), "gst_rate"),
])
def test_create_rejects_invalid(repo, invoice, message):
    with pytest.raises(InvoiceError) as exc:
        invoice_service.create_invoice(repo, invoice)
    assert message in str(exc.value)
    assert repo.invoices == {}


def test_negative_quantity_policy(repo):
    strict = BillingPolicy(allow_negative_quantity=False)
    with pytest.raises(InvoiceError):
        invoice_service.create_invoice(repo, _invoice(items=[_line("p1", "-1", "10")]), strict)

    created = invoice_service.create_invoice(repo, _invoice(items=[_line("p1", "-1", "10")]))
    assert repo.products["p1"].stock == Decimal("11")
    assert created.total < 0


def test_negative_stock_policy(repo):
    strict = BillingPolicy(allow_negative_stock=False)
    with pytest.raises(InventoryError):
        invoice_service.create_invoice(repo, _invoice(items=[_line("p1", "11", "10")]), strict)
    assert repo.products["p1"].stock == Decimal("10")

    invoice_service.create_invoice(repo, _invoice(items=[_line("p1", "11", "10")]))
    assert repo.products["p1"].stock == Decimal("-1")


def test_reject_missing_state_policy(repo):
    repo.customers["c1"].state = None
    with pytest.raises(TaxError):
        invoice_service.create_invoice(repo, _invoice(), BillingPolicy(missing_state_policy="reject"))


def test_reject_policy_ignored_when_gst_disabled(repo):
    repo.customers["c1"].state = None
    policy = BillingPolicy(gst_enabled=False, missing_state_policy="reject")
    created = invoice_service.create_invoice(repo, _invoice(), policy)

    assert created.total == Decimal("2000")
    assert created.total_cgst == created.total_sgst == created.total_igst == 0


def test_gst_disabled_by_company(repo):
    repo.company.gst_enabled = False
    created = invoice_service.create_invoice(repo, _invoice())
    assert created.total == Decimal("2000")
    assert created.gst_enabled is False


def test_preview_writes_nothing(repo):
    before = repo.store.get_all("invoices")
    priced = invoice_service.preview_invoice(repo, _invoice())

    assert priced.total == Decimal("2360")
    assert repo.store.get_all("invoices") == before
    assert repo.customers["c1"].balance == 0


def test_store_failure_surfaces(store):
    failing = FailingStore(fail_after=0)
    repo = BillingRepository(failing)
    # Seed directly into the underlying dicts so the first real write is the invoice's
    seeded = _seed(BillingRepository(store))
    repo.products = seeded.products
    repo.customers = seeded.customers
    repo.company = seeded.company

    with pytest.raises(PersistenceError):
        invoice_service.create_invoice(repo, _invoice())
