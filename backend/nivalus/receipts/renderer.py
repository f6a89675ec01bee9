"""
PDF transaction receipts.

The receipt is laid out on an off-page canvas 800 units wide, measured, and
then placed on a single A4 page: scaled to the page width, and scaled down
further (centred horizontally) when it would run past the bottom of the page.
"""

import io
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Union

from reportlab.lib.colors import Color, HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen.canvas import Canvas

RECEIPT_WIDTH = 800
PADDING = 40
CONTENT_WIDTH = RECEIPT_WIDTH - 2 * PADDING

SERIF = "Times-Roman"
SERIF_BOLD = "Times-Bold"
MONO = "Courier"

DISCLAIMER = (
    "This receipt serves as official proof of your transaction. Please retain this "
    "document for your records and future reference. For any questions, please "
    "contact our customer service."
)


@dataclass(frozen=True)
class ReceiptTheme:
    header: Color
    header_border: Color
    accent: Color
    text: Color
    muted: Color
    panel: Color
    footer: Color


THEMES: Dict[str, ReceiptTheme] = {
    "classic": ReceiptTheme(
        header=HexColor("#EC0000"),
        header_border=HexColor("#B30000"),
        accent=HexColor("#CC0000"),
        text=HexColor("#1A1A1A"),
        muted=HexColor("#666666"),
        panel=HexColor("#F8F8F8"),
        footer=HexColor("#1A1A1A"),
    ),
    "midnight": ReceiptTheme(
        header=HexColor("#0B1F3A"),
        header_border=HexColor("#C9A227"),
        accent=HexColor("#C9A227"),
        text=HexColor("#14213D"),
        muted=HexColor("#5C6B80"),
        panel=HexColor("#F2F4F8"),
        footer=HexColor("#0B1F3A"),
    ),
}


@dataclass
class Sender:
    username: str
    email: str


@dataclass
class Recipient:
    name: str
    account_number: Optional[str] = None
    routing_number: Optional[str] = None
    swift_code: Optional[str] = None
    bank_name: Optional[str] = None
    bank_address: Optional[str] = None
    identifier: Optional[str] = None

    def rows(self) -> List[Tuple[str, str]]:
        labelled = [
            ("Name", self.name),
            ("Account Number", self.account_number),
            ("Routing Number", self.routing_number),
            ("SWIFT Code", self.swift_code),
            ("Bank Name", self.bank_name),
            ("Bank Address", self.bank_address),
            ("Identifier", self.identifier),
        ]
        return [(label, value) for label, value in labelled if value]


@dataclass
class ReceiptData:
    transaction_id: str
    date_time: Union[datetime, str]
    transfer_type: str
    status: str
    sender: Sender
    recipient: Recipient
    amount: float
    memo: Optional[str] = None
    bank_name: str = field(default="Nivalus Bank")

    @classmethod
    def from_transaction(cls, transaction, user) -> "ReceiptData":
        return cls(
            transaction_id=str(transaction.id),
            date_time=transaction.date_time,
            transfer_type=transaction.type,
            status=transaction.status,
            sender=Sender(username=user.username, email=user.email),
            recipient=Recipient(name=transaction.recipient or user.full_name),
            amount=transaction.amount,
            memo=transaction.memo,
        )


@dataclass(frozen=True)
class Placement:
    scale: float
    x: float
    y: float
    width: float
    height: float


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_date(value: Union[datetime, str]) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return f"{value:%B} {value.day}, {value:%Y}, {value:%I:%M:%S %p}"


def fit_to_page(content_width: float, content_height: float,
                page_width: float = A4[0], page_height: float = A4[1]) -> Placement:
    """
    Place content on a page: full page width, top-aligned; when that is too
    tall, scale down to the page height and centre horizontally.
    """
    scale = page_width / content_width
    height = content_height * scale
    if height > page_height:
        scale *= page_height / height
    width = content_width * scale
    height = content_height * scale
    x = (page_width - width) / 2
    y = page_height - height
    return Placement(scale=scale, x=x, y=y, width=width, height=height)


def _document_id() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(9))


class _ReceiptPainter:
    """
    Walks the receipt top to bottom. Without a canvas it only measures;
    with one it also draws. ``top`` is the distance from the top edge.
    """

    def __init__(self, data: ReceiptData, theme: ReceiptTheme,
                 canvas: Optional[Canvas] = None, height: float = 0.0):
        self.data = data
        self.theme = theme
        self.canvas = canvas
        self.height = height
        self.top = 0.0

    # Coordinates: receipt space has its origin at the bottom-left
    def _y(self, top: float) -> float:
        return self.height - top

    def _text(self, x: float, top: float, text: str, font: str, size: float,
              color: Color, align: str = "left") -> None:
        if self.canvas is None:
            return
        self.canvas.setFillColor(color)
        self.canvas.setFont(font, size)
        y = self._y(top)
        if align == "center":
            self.canvas.drawCentredString(x, y, text)
        elif align == "right":
            self.canvas.drawRightString(x, y, text)
        else:
            self.canvas.drawString(x, y, text)

    def _rect(self, x: float, top: float, width: float, height: float, color: Color) -> None:
        if self.canvas is None:
            return
        self.canvas.setFillColor(color)
        self.canvas.rect(x, self._y(top + height), width, height, stroke=0, fill=1)

    def _line(self, top: float, color: Color, width: float = 1) -> None:
        if self.canvas is None:
            return
        self.canvas.setStrokeColor(color)
        self.canvas.setLineWidth(width)
        self.canvas.line(PADDING, self._y(top), RECEIPT_WIDTH - PADDING, self._y(top))

    def header(self) -> None:
        band = 110
        self._rect(0, 0, RECEIPT_WIDTH, band, self.theme.header)
        self._rect(0, band - 4, RECEIPT_WIDTH, 4, self.theme.header_border)
        white = HexColor("#FFFFFF")
        self._text(PADDING, 50, self.data.bank_name, SERIF_BOLD, 28, white)
        self._text(PADDING, 74, "Secure Banking Solutions", SERIF, 14, white)
        self._text(RECEIPT_WIDTH - PADDING, 58, self.data.status.upper(), SERIF_BOLD, 12, white, align="right")
        self.top = band + 30

    def title(self) -> None:
        center = RECEIPT_WIDTH / 2
        self._text(center, self.top + 24, "Transaction Receipt", SERIF_BOLD, 24, self.theme.text, align="center")
        self._text(center, self.top + 46, "Official Banking Document", SERIF, 14, self.theme.muted, align="center")
        self.top += 66
        self._line(self.top, HexColor("#F0F0F0"), 2)
        self.top += 30

    def details(self) -> None:
        cells = [
            ("Transaction ID", self.data.transaction_id),
            ("Date & Time", format_date(self.data.date_time)),
            ("Transfer Type", self.data.transfer_type),
            ("Status", self.data.status),
        ]
        column_width = CONTENT_WIDTH / 2
        for index, (label, value) in enumerate(cells):
            row, column = divmod(index, 2)
            x = PADDING + column * column_width
            top = self.top + row * 60
            self._text(x, top + 14, label.upper(), SERIF_BOLD, 10, self.theme.muted)
            self._text(x, top + 36, value, SERIF, 15, self.theme.text)
        self.top += 130

    def section(self, heading: str, rows: List[Tuple[str, str]]) -> None:
        self._text(PADDING, self.top + 18, heading, SERIF_BOLD, 16, self.theme.accent)
        self.top += 30
        for label, value in rows:
            self._text(PADDING, self.top + 16, f"{label}:", SERIF_BOLD, 12, self.theme.muted)
            for line in simpleSplit(value, SERIF, 12, CONTENT_WIDTH - 160):
                self._text(PADDING + 160, self.top + 16, line, SERIF, 12, self.theme.text)
                self.top += 24
        self.top += 16

    def amount(self) -> None:
        box = 90
        self._rect(PADDING, self.top, CONTENT_WIDTH, box, self.theme.panel)
        center = RECEIPT_WIDTH / 2
        self._text(center, self.top + 30, "AMOUNT", SERIF_BOLD, 12, self.theme.muted, align="center")
        self._text(center, self.top + 68, format_currency(self.data.amount), SERIF_BOLD, 32,
                   self.theme.accent, align="center")
        self.top += box + 30

    def memo(self) -> None:
        if not self.data.memo:
            return
        self._text(PADDING, self.top + 18, "Memo", SERIF_BOLD, 16, self.theme.accent)
        self.top += 30
        for paragraph in self.data.memo.splitlines() or [""]:
            for line in simpleSplit(paragraph, SERIF, 12, CONTENT_WIDTH) or [""]:
                self._text(PADDING, self.top + 14, line, SERIF, 12, self.theme.text)
                self.top += 16
        self.top += 30

    def footer(self) -> None:
        disclaimer = simpleSplit(DISCLAIMER, SERIF, 11, 500)
        box = 110 + 15 * len(disclaimer)
        self._rect(PADDING, self.top, CONTENT_WIDTH, box, self.theme.footer)
        white = HexColor("#FFFFFF")
        center = RECEIPT_WIDTH / 2
        self._text(center, self.top + 32, f"Thank you for banking with {self.data.bank_name}",
                   SERIF_BOLD, 16, white, align="center")
        self._text(center, self.top + 52, "Your Trusted Financial Partner", SERIF, 13, white, align="center")
        line_top = self.top + 76
        for line in disclaimer:
            self._text(center, line_top, line, SERIF, 11, white, align="center")
            line_top += 15
        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        self._text(center, line_top + 14, f"Generated on {generated} | Document ID: {_document_id()}",
                   MONO, 10, white, align="center")
        self.top += box

    def paint(self) -> float:
        self.header()
        self.title()
        self.details()
        self.section("Sender", [("Username", self.data.sender.username), ("Email", self.data.sender.email)])
        self.section("Recipient", self.data.recipient.rows())
        self.amount()
        self.memo()
        self.footer()
        return self.top + PADDING


def measure_receipt(data: ReceiptData, theme: str = "classic") -> float:
    """Height of the laid-out receipt in receipt units"""
    return _ReceiptPainter(data, _theme(theme)).paint()


def _theme(name: str) -> ReceiptTheme:
    try:
        return THEMES[name]
    except KeyError:
        raise ValueError(f"Unknown receipt theme: {name}")


def render_receipt(data: ReceiptData, theme: str = "classic") -> bytes:
    """Render a single-page A4 PDF receipt and return its bytes"""
    palette = _theme(theme)
    content_height = _ReceiptPainter(data, palette).paint()
    placement = fit_to_page(RECEIPT_WIDTH, content_height)

    buffer = io.BytesIO()
    pdf = Canvas(buffer, pagesize=A4)
    pdf.setTitle(f"Receipt {data.transaction_id}")
    pdf.setAuthor(data.bank_name)
    pdf.saveState()
    pdf.translate(placement.x, placement.y)
    pdf.scale(placement.scale, placement.scale)
    _ReceiptPainter(data, palette, canvas=pdf, height=content_height).paint()
    pdf.restoreState()
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
