from datetime import datetime, timezone

import pytest

from nivalus.receipts.renderer import (
    ReceiptData,
    Recipient,
    Sender,
    fit_to_page,
    format_currency,
    format_date,
    measure_receipt,
    render_receipt,
)


def make_receipt(memo=None, **recipient):
    return ReceiptData(
        transaction_id="42",
        date_time=datetime(2026, 10, 1, 14, 5, 9, tzinfo=timezone.utc),
        transfer_type="Transfer",
        status="Completed",
        sender=Sender(username="alice", email="alice@nivalus.io"),
        recipient=Recipient(name="City Power", **recipient),
        amount=1234.5,
        memo=memo,
    )


@pytest.mark.parametrize("theme", ["classic", "midnight"])
def test_render_produces_single_page_pdf(theme):
    pdf = render_receipt(make_receipt(memo="October bill"), theme)

    assert pdf.startswith(b"%PDF")
    assert b"/Count 1 " in pdf


def test_unknown_theme_raises():
    with pytest.raises(ValueError):
        render_receipt(make_receipt(), "neon")


def test_memo_and_recipient_details_make_receipt_taller():
    plain = measure_receipt(make_receipt())
    detailed = measure_receipt(make_receipt(
        memo="A long memo " * 30,
        account_number="000123456789",
        routing_number="021000021",
        bank_name="Second Bank",
    ))

    assert detailed > plain


def test_recipient_rows_skip_empty_fields():
    recipient = Recipient(name="Bob", swift_code="NIVAUS33")

    assert recipient.rows() == [("Name", "Bob"), ("SWIFT Code", "NIVAUS33")]


def test_fit_to_page_uses_full_width_when_content_fits():
    placement = fit_to_page(800, 400, page_width=400, page_height=600)

    assert placement.scale == 0.5
    assert placement.x == 0
    assert placement.height == 200
    assert placement.y == 400


def test_fit_to_page_scales_down_and_centres_tall_content():
    placement = fit_to_page(800, 2400, page_width=400, page_height=600)

    assert placement.height == pytest.approx(600)
    assert placement.width == pytest.approx(200)
    assert placement.x == pytest.approx(100)
    assert placement.y == pytest.approx(0)


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-3) == "-$3.00"


def test_format_date_accepts_iso_strings():
    assert format_date("2026-10-01T14:05:09Z") == "October 1, 2026, 02:05:09 PM"
