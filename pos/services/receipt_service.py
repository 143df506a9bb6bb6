"""
Receipt rendering.

Receipts of committed sales use stored values only, never recomputed.
Estimates render the current cart's breakdown and write nothing.
"""

from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A5
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from pos.models import Sale
from pos.utils.formatters import money, quantity, datetime_short

PAYMENT_LABELS = {'CASH': 'Cash', 'CARD': 'Card', 'UPI': 'UPI'}
ESTIMATE_NOTICE = 'ESTIMATE - NOT A RECEIPT. Prices and stock are confirmed at checkout.'


def _totals_rows(subtotal, tax, item_discount, coupon, group, manual, total, currency) -> List[List[str]]:
    """
    Subtotal, tax, one row per discount that applied, then the total.

    `coupon` is (code, amount), `group` is (scheme name, amount); either may be None.
    """
    rows = [['Subtotal', money(subtotal, currency)], ['Tax', money(tax, currency)]]
    if item_discount:
        rows.append(['Item discounts', f"-{money(item_discount, currency)}"])
    if coupon:
        rows.append([f"Coupon ({coupon[0]})", f"-{money(coupon[1], currency)}"])
    if group:
        rows.append([group[0], f"-{money(group[1], currency)}"])
    if manual:
        rows.append(['Discount', f"-{money(manual, currency)}"])
    rows.append(['TOTAL', money(total, currency)])
    return rows


def receipt_lines(sale: Sale, currency: str = '') -> Dict[str, Any]:
    """Display rows for a stored sale: items, then totals with each discount."""
    items = [
        [line.product_name, quantity(line.qty), money(line.unit_price, currency), money(line.line_total, currency)]
        for line in sale.lines
    ]
    detail = sale.discount_detail
    totals = _totals_rows(
        sale.subtotal,
        sale.tax_total,
        sale.item_discount,
        (detail['coupon']['code'], detail['coupon']['amount']) if detail['coupon'] else None,
        (detail['group']['scheme_name'], detail['group']['amount']) if detail['group'] else None,
        detail['manual']['amount'] if detail['manual'] else None,
        sale.total,
        currency,
    )
    return {'items': items, 'totals': totals}


def estimate_lines(cart, breakdown, currency: str = '') -> Dict[str, Any]:
    """Same layout for an uncommitted cart and its freshly computed breakdown."""
    items = [
        [line.name, quantity(line.quantity), money(line.unit_price, currency), money(line.line_total, currency)]
        for line in cart.lines
    ]
    totals = _totals_rows(
        breakdown.subtotal,
        breakdown.tax_total,
        breakdown.item_discount,
        (breakdown.coupon_code, breakdown.coupon_discount) if breakdown.coupon_discount > 0 else None,
        (breakdown.scheme_name, breakdown.group_discount) if breakdown.group_discount > 0 else None,
        breakdown.manual_discount if breakdown.manual_discount > 0 else None,
        breakdown.grand_total,
        currency,
    )
    return {'items': items, 'totals': totals}


def generate_receipt_pdf(sale: Sale, store_info: Dict[str, Any]) -> BytesIO:
    """
    Render the receipt of a stored sale as PDF.

    Args:
        sale: Committed sale
        store_info: name, address, phone, gst_no, footer, currency
    """
    method = sale.payment_method.value if sale.payment_method else ''
    meta = [
        ['Receipt #:', str(sale.id)],
        ['Date:', datetime_short(sale.datetime)],
        ['Payment:', PAYMENT_LABELS.get(method, method)],
    ]
    return _render_pdf(store_info, meta, receipt_lines(sale, store_info.get('currency', '')))


def generate_estimate_pdf(cart, breakdown, store_info: Dict[str, Any],
                          issued_at: Optional[datetime] = None) -> BytesIO:
    """Render a printable estimate of the current cart."""
    meta = [
        ['Estimate:', f"{cart.item_count} item(s)"],
        ['Date:', datetime_short(issued_at or datetime.now())],
    ]
    rows = estimate_lines(cart, breakdown, store_info.get('currency', ''))
    return _render_pdf(store_info, meta, rows, notice=ESTIMATE_NOTICE)


def _render_pdf(store_info: Dict[str, Any], meta: List[List[str]], rows: Dict[str, Any],
                notice: Optional[str] = None) -> BytesIO:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A5,
        rightMargin=0.5*inch,
        leftMargin=0.5*inch,
        topMargin=0.5*inch,
        bottomMargin=0.5*inch
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'ReceiptTitle',
        parent=styles['Heading1'],
        fontSize=18,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=6,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    header_style = ParagraphStyle(
        'ReceiptHeader',
        parent=styles['Normal'],
        fontSize=9,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=4
    )

    # 1. Store header
    elements.append(Paragraph(store_info.get('name') or 'Receipt', title_style))
    for key in ('address', 'phone'):
        if store_info.get(key):
            elements.append(Paragraph(store_info[key], header_style))
    if store_info.get('gst_no'):
        elements.append(Paragraph(f"GSTIN: {store_info['gst_no']}", header_style))
    if notice:
        notice_style = ParagraphStyle('Notice', parent=header_style, fontName='Helvetica-Bold',
                                      textColor=colors.HexColor('#C0392B'))
        elements.append(Paragraph(notice, notice_style))
    elements.append(Spacer(1, 0.15*inch))

    # 2. Metadata
    info_table = Table(meta, colWidths=[1.2*inch, 2.5*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.15*inch))

    # 3. Items
    items_table = Table([['Item', 'Qty', 'Price', 'Amount']] + rows['items'],
                        colWidths=[2.2*inch, 0.5*inch, 0.9*inch, 0.9*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (1, 1), (1, -1), 'CENTER'),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.1*inch))

    # 4. Totals
    totals_table = Table(rows['totals'], colWidths=[3.6*inch, 0.9*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, -1), (-1, -1), 12),
        ('LINEABOVE', (0, -1), (-1, -1), 1, colors.HexColor('#2C3E50')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.25*inch))

    if store_info.get('footer'):
        footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=8,
                                      textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER)
        elements.append(Paragraph(store_info['footer'], footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
