"""HTML markup for GST invoices.

Each printed page is a ``<section class="page">``; the render backend turns
every section into one PDF page.
"""

from html import escape
from typing import Sequence

from gst.core.dates import format_indian_date
from gst.documents.csv_export import format_money, format_rate
from gst.documents.templates import DocumentTemplate
from gst.models.tax import EnrichedOrder, LineItemTax
from gst.tax.calculator import fallback_breakdown
from gst.tax.jurisdictions import state_name

PAGE_SECTION = '<section class="page">'


def _style(template: DocumentTemplate) -> str:
    layout = template.layout
    m = layout.margins
    return (
        "<style>"
        f"@page {{ size: {layout.page_size} {layout.orientation}; "
        f"margin: {m.top}mm {m.right}mm {m.bottom}mm {m.left}mm; }}"
        f"body {{ font-family: {escape(layout.fonts.primary)}; "
        f"font-size: {layout.fonts.size}pt; color: {layout.colors.text}; }}"
        f"h1, h2 {{ color: {layout.colors.primary}; }}"
        f".muted {{ color: {layout.colors.secondary}; "
        f"font-family: {escape(layout.fonts.secondary)}; }}"
        "section.page { page-break-after: always; }"
        "table { width: 100%; border-collapse: collapse; }"
        "th, td { border: 1px solid #ddd; padding: 4px; text-align: left; }"
        "</style>"
    )


def _header(template: DocumentTemplate, entry: EnrichedOrder) -> str:
    business = template.business
    order = entry.order
    parts = []
    logo = template.layout.logo
    if template.show_logo and logo:
        parts.append(
            f'<img src="{escape(logo.url)}" width="{logo.width}" height="{logo.height}">'
        )
    parts.append(f"<h1>{escape(business.company_name or 'Tax Invoice')}</h1>")
    if business.gstin:
        parts.append(f'<p class="muted">GSTIN: {escape(business.gstin)}</p>')
    address = ", ".join(
        p for p in (business.address, business.city, business.state, business.pincode) if p
    )
    if address:
        parts.append(f'<p class="muted">{escape(address)}</p>')
    contact = " | ".join(p for p in (business.phone, business.email) if p)
    if contact:
        parts.append(f'<p class="muted">{escape(contact)}</p>')

    parts.append(f"<h2>Invoice {escape(order.name)}</h2>")
    parts.append(f"<p>Date: {format_indian_date(order.created_at)}</p>")
    parts.append(f"<p>Bill to: {escape(order.customer_name)}</p>")
    if order.shipping_address:
        parts.append(f"<p>Ship to: {escape(order.shipping_address.formatted())}</p>")
    if entry.buyer_jurisdiction:
        parts.append(
            f"<p>Place of supply: {escape(state_name(entry.buyer_jurisdiction))}</p>"
        )
    return "".join(parts)


def _items_table(
    lines: Sequence[LineItemTax], show_codes: bool, show_tax: bool
) -> str:
    head = ["Item", "Qty", "Unit Price", "Taxable"]
    if show_codes:
        head.insert(1, "HSN")
    if show_tax:
        head += ["GST Rate", "GST"]
    rows = ["<tr>" + "".join(f"<th>{h}</th>" for h in head) + "</tr>"]
    for line in lines:
        item = line.line_item
        cells = [escape(item.name or item.title), str(item.quantity),
                 format_money(item.price), format_money(line.taxable_amount)]
        if show_codes:
            cells.insert(1, escape(line.tax.classification_code))
        if show_tax:
            cells += [format_rate(line.tax.rate), format_money(line.tax.total_tax_amount)]
        rows.append("<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>")
    return "<table>" + "".join(rows) + "</table>"


def _totals(template: DocumentTemplate, entry: EnrichedOrder, show_tax: bool) -> str:
    tax = entry.tax
    parts = [f"<p>Taxable value: ₹{format_money(tax.taxable_amount)}</p>"]
    if show_tax:
        if tax.is_same_jurisdiction:
            half_rate = format_rate(tax.rate / 2)
            parts.append(f"<p>CGST ({half_rate}): ₹{format_money(tax.cgst_amount)}</p>")
            parts.append(f"<p>SGST ({half_rate}): ₹{format_money(tax.sgst_amount)}</p>")
        else:
            parts.append(
                f"<p>IGST ({format_rate(tax.rate)}): ₹{format_money(tax.igst_amount)}</p>"
            )
        parts.append(f"<p>Total GST: ₹{format_money(tax.total_tax_amount)}</p>")
    parts.append(f"<p><strong>Grand total: ₹{format_money(tax.total_amount)}</strong></p>")

    bank = template.business.bank_details
    if template.show_bank_details and bank:
        parts.append(
            '<p class="muted">'
            f"Bank: {escape(bank.bank_name)} | A/C: {escape(bank.account_number)} | "
            f"IFSC: {escape(bank.ifsc_code)}</p>"
        )
    return "".join(parts)


def invoice_pages(
    entry: EnrichedOrder,
    template: DocumentTemplate,
    *,
    show_tax: bool,
    show_codes: bool,
    max_items_per_page: int,
    section_title: str | None = None,
) -> list[str]:
    """Page sections for one order; line items are split across pages."""
    lines = list(entry.line_taxes) or [
        LineItemTax(
            line_item=item,
            taxable_amount=item.net_amount,
            tax=fallback_breakdown(item.net_amount, entry.tax.classification_code),
        )
        for item in entry.order.line_items
    ]
    chunks = [
        lines[i:i + max_items_per_page] for i in range(0, len(lines), max_items_per_page)
    ] or [[]]

    pages = []
    for index, chunk in enumerate(chunks):
        body = []
        if section_title and index == 0:
            body.append(f'<p class="muted">{escape(section_title)}</p>')
        body.append(_header(template, entry))
        body.append(_items_table(chunk, show_codes, show_tax))
        if index == len(chunks) - 1:
            body.append(_totals(template, entry, show_tax))
        else:
            body.append('<p class="muted">Continued on next page</p>')
        pages.append(PAGE_SECTION + "".join(body) + "</section>")
    return pages


def html_document(pages: Sequence[str], template: DocumentTemplate) -> str:
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8">'
        + _style(template)
        + "</head><body>"
        + "".join(pages)
        + "</body></html>"
    )
