"""
Trip exports: per-sale invoice PDF, trip report PDF and the Excel sales book.

All of it is rendered from the trip as fetched (no backend writes).
"""
import io
from datetime import date, datetime
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from tripdesk.enums import TripStatus, TripType
from tripdesk.models.trip import Sale, Trip
from tripdesk.services import ledger_service
from tripdesk.utils import amount_in_words, fmt_money, round2

NA = "N/A"
TRANSFER_DC_PREFIX = "TRANSFER-"

DARK = colors.HexColor("#111827")
GRAY = colors.HexColor("#6b7280")
BRAND = colors.HexColor("#1e3a8a")
RULE = colors.HexColor("#e5e7eb")
HEAD_FILL = colors.HexColor("#f3f4f6")


def _fmt_date(d):
    if not d:
        return NA
    if isinstance(d, (datetime, date)):
        return d.strftime("%d/%m/%Y")
    return str(d)


def _avg(weight, birds) -> float:
    return round2(weight / birds) if weight and birds else 0.0


def _ratio(a, b) -> float:
    return round2(a / b) if b else 0.0


def supplier_label(trip: Trip, purchase) -> str:
    """Transfer-in purchases on a transferred trip have no real supplier."""
    if trip.type == TripType.TRANSFERRED and (purchase.dc_number or "").startswith(TRANSFER_DC_PREFIX):
        return "Transferred Purchase"
    return (purchase.supplier.name if purchase.supplier else None) or NA


def extract_trip_sheet(trip: Trip) -> Dict[str, Any]:
    """Flatten a trip into the sections of the sales book sheet."""
    summary = trip.summary
    completed = trip.status == TripStatus.COMPLETED
    stations = trip.diesel.stations
    distance = trip.vehicle_readings.total_distance
    purchase_avg = _ratio(summary.total_weight_purchased, summary.total_birds_purchased)

    basic_info = {
        "DATE": _fmt_date(trip.date),
        "VEHICLE NO": (trip.vehicle.vehicle_number if trip.vehicle else None) or NA,
        "SUPERVISOR": (trip.supervisor.name if trip.supervisor else None) or NA,
        "DRIVER": trip.driver or NA,
        "LABOUR": trip.labour or NA,
        "START LOCATION (ROUTE)": trip.route.from_ or NA,
        "END LOCATION (ROUTE)": trip.route.to or NA,
    }

    expenses = {}
    for expense in trip.expenses:
        if expense.category:
            expenses[expense.category.upper()] = expense.amount

    diesel = {
        "STATIONS": [
            {"NAME": s.station_name or NA, "VOL": round2(s.volume), "RATE": round2(s.rate), "AMT": round2(s.amount)}
            for s in stations
        ],
        "TOTAL_VOLUME": round2(trip.diesel.total_volume),
        "TOTAL_RATE": _ratio(trip.diesel.total_amount, trip.diesel.total_volume),
        "TOTAL_AMOUNT": round2(trip.diesel.total_amount),
    }

    purchases = [
        {
            "DRIVER NAME": trip.driver or NA,
            "SUP": supplier_label(trip, p),
            "PARTICULARS": "PURCHASE",
            "DC NO": p.dc_number or NA,
            "BIRDS": p.birds,
            "WEIGHT": p.weight,
            "AVG": p.avg_weight or _avg(p.weight, p.birds),
            "RATE": p.rate,
            "AMOUNT": p.amount,
            "LESS TDS": 0,
            "BALANCE": p.amount,
            "REMARKS": "",
        }
        for p in trip.purchases
    ]

    sales = [
        {
            "DELIVERY DETAILS": (s.client.name if s.client else None) or NA,
            "BILL NO": s.bill_number or NA,
            "BIRDS": s.birds,
            "WEIGHT": s.weight,
            "AVG": s.avg_weight or _avg(s.weight, s.birds),
            "RATE": s.rate,
            "TOTAL": s.amount,
            "CASH": s.cash_paid,
            "ONLINE": s.online_paid,
            "DISC": s.discount,
        }
        for s in trip.sales
    ]

    readings = {
        "OP READING": trip.vehicle_readings.opening,
        "CL READING": trip.vehicle_readings.closing or 0,
        "TOTAL_RUNNING_KM": distance,
        "TOTAL_DIESEL_VOL": trip.diesel.total_volume,
        "VEHICLE_AVERAGE": _ratio(distance, trip.diesel.total_volume),
        "RENT AMT PER KM": trip.rent_per_km,
        "GROSS RENT": summary.gross_rent,
        "LESS DIESEL AMT": round2(summary.total_diesel_amount),
        "NETT RENT": round2(distance * trip.rent_per_km - summary.total_diesel_amount) if distance else 0.0,
        "BIRDS PROFIT": summary.birds_profit,
        "TOTAL PROFIT": summary.trip_profit,
        "PROFIT PER KG": _ratio(summary.trip_profit, summary.total_weight_sold),
    }

    # natural weight loss is only final once the trip is completed
    natural_kg = summary.bird_weight_loss if completed else 0.0
    natural_amount = round2(natural_kg * summary.avg_purchase_rate)
    death_loss = {
        "BIRDS": summary.total_birds_lost,
        "WEIGHT": summary.total_weight_lost,
        "AVG": purchase_avg,
        "RATE": round2(summary.avg_purchase_rate),
        "AMOUNT": round2(summary.total_losses),
    }
    natural_loss = {
        "BIRDS": "-",
        "WEIGHT": round2(natural_kg),
        "AVG": purchase_avg,
        "RATE": round2(summary.avg_purchase_rate),
        "AMOUNT": natural_amount,
    }
    total_loss = {
        "BIRDS": summary.total_birds_lost,
        "WEIGHT": round2(summary.total_weight_lost + natural_kg),
        "AVG": purchase_avg,
        "RATE": round2(summary.avg_purchase_rate),
        "AMOUNT": round2(summary.total_losses + natural_amount),
    }

    return {
        "basic_info": basic_info,
        "expenses": expenses,
        "diesel": diesel,
        "purchases": purchases,
        "sales": sales,
        "readings": readings,
        "death_loss": death_loss,
        "natural_loss": natural_loss,
        "total_loss": total_loss,
    }


# Excel

_BOLD = Font(bold=True)
_TITLE = Font(bold=True, size=14)
_HEADER_FILL = PatternFill("solid", fgColor="F3F4F6")


def _header_row(ws, values: List[str]):
    ws.append(values)
    for cell in ws[ws.max_row]:
        cell.font = _BOLD
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center")


def _section(ws, title: str):
    ws.append([])
    ws.append([title])
    ws.cell(row=ws.max_row, column=1).font = _BOLD


def build_sales_book(trip: Trip, company_name: str = "") -> bytes:
    """Excel workbook with the trip sheet; returns xlsx bytes."""
    sheet = extract_trip_sheet(trip)
    wb = Workbook()
    ws = wb.active
    # sheet names are limited to 31 chars without []:*?/\
    ws.title = "".join(ch for ch in (trip.trip_id or "Trip") if ch not in "[]:*?/\\")[:31] or "Trip"

    ws.append([company_name or "TRIP SHEET"])
    ws.cell(row=1, column=1).font = _TITLE
    for label, value in sheet["basic_info"].items():
        ws.append([label, value])

    _section(ws, "PURCHASES")
    purchase_cols = ["DRIVER NAME", "SUP", "PARTICULARS", "DC NO", "BIRDS", "WEIGHT", "AVG",
                     "RATE", "AMOUNT", "LESS TDS", "BALANCE", "REMARKS"]
    _header_row(ws, purchase_cols)
    for row in sheet["purchases"]:
        ws.append([row[c] for c in purchase_cols])
    bought = ledger_service.purchased(trip)
    ws.append(["", "", "TOTAL", "", bought.birds, bought.weight, "", "",
               round2(sum(p.amount for p in trip.purchases))])
    ws.cell(row=ws.max_row, column=3).font = _BOLD

    _section(ws, "SALES")
    sale_cols = ["DELIVERY DETAILS", "BILL NO", "BIRDS", "WEIGHT", "AVG", "RATE", "TOTAL", "CASH", "ONLINE", "DISC"]
    _header_row(ws, sale_cols)
    for row in sheet["sales"]:
        ws.append([row[c] for c in sale_cols])
    out = ledger_service.sold(trip)
    ws.append(["TOTAL", "", out.birds, out.weight, "", "",
               round2(sum(s.amount for s in trip.sales)),
               round2(sum(s.cash_paid for s in trip.sales)),
               round2(sum(s.online_paid for s in trip.sales)),
               round2(sum(s.discount for s in trip.sales))])
    ws.cell(row=ws.max_row, column=1).font = _BOLD

    _section(ws, "STOCK")
    _header_row(ws, ["BIRDS", "WEIGHT", "AVG", "RATE", "VALUE", "NOTES"])
    for s in trip.stocks:
        ws.append([s.birds, s.weight, s.avg_weight, s.rate, s.value, s.notes or ""])

    _section(ws, "EXPENSES")
    for category, amount in sheet["expenses"].items():
        ws.append([category, amount])

    _section(ws, "DIESEL")
    _header_row(ws, ["NAME", "VOL", "RATE", "AMT"])
    for station in sheet["diesel"]["STATIONS"]:
        ws.append([station["NAME"], station["VOL"], station["RATE"], station["AMT"]])
    ws.append(["TOTAL", sheet["diesel"]["TOTAL_VOLUME"], sheet["diesel"]["TOTAL_RATE"], sheet["diesel"]["TOTAL_AMOUNT"]])

    _section(ws, "RUNNING & PROFIT")
    for label, value in sheet["readings"].items():
        ws.append([label, value])

    _section(ws, "LOSSES")
    loss_cols = ["BIRDS", "WEIGHT", "AVG", "RATE", "AMOUNT"]
    _header_row(ws, [""] + loss_cols)
    for label, key in (("DEATH BIRDS", "death_loss"), ("NATURAL WEIGHT LOSS", "natural_loss"), ("TOTAL", "total_loss")):
        ws.append([label] + [sheet[key][c] for c in loss_cols])

    for i in range(1, 13):
        ws.column_dimensions[get_column_letter(i)].width = 16

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


# PDF

def _table(data, col_widths) -> Table:
    data = [[v if isinstance(v, str) else str(v) for v in row] for row in data]
    table = Table(data, colWidths=col_widths, hAlign="LEFT", repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEAD_FILL),
        ("TEXTCOLOR", (0, 0), (-1, 0), DARK),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, RULE),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 4),
    ]))
    return table


def _draw_header(c, width, height, company_name, title, subtitle):
    c.setFillColor(BRAND)
    c.rect(0, height - 24 * mm, width, 24 * mm, stroke=0, fill=1)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 15)
    c.drawString(15 * mm, height - 14 * mm, company_name)
    c.setFont("Helvetica-Bold", 11)
    c.drawRightString(width - 15 * mm, height - 12 * mm, title)
    c.setFont("Helvetica", 9)
    c.drawRightString(width - 15 * mm, height - 18 * mm, subtitle)


def _flow(c, table, y, width, height) -> float:
    """Draw a table at y, splitting it across pages when it does not fit."""
    avail_width = width - 30 * mm
    top, bottom = height - 15 * mm, 15 * mm
    while True:
        _, th = table.wrapOn(c, avail_width, height)
        if y - th >= bottom:
            table.drawOn(c, 15 * mm, y - th)
            return y - th - 6 * mm
        parts = table.split(avail_width, y - bottom)
        if len(parts) < 2:
            if y >= top:
                # taller than a page and cannot be split; draw what fits
                table.drawOn(c, 15 * mm, y - th)
                return bottom
            c.showPage()
            y = top
            continue
        head, table = parts[0], parts[1]
        _, hh = head.wrapOn(c, avail_width, height)
        head.drawOn(c, 15 * mm, y - hh)
        c.showPage()
        y = top


def _heading(c, text, y, width, height) -> float:
    if y < 30 * mm:
        c.showPage()
        y = height - 15 * mm
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(15 * mm, y, text)
    return y - 4 * mm


def render_invoice_pdf(trip: Trip, sale: Sale, company_name: str, currency: str = "Rs.") -> bytes:
    """Invoice (or payment receipt) for one sale line. Returns PDF bytes."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    title = "PAYMENT RECEIPT" if sale.is_receipt else "TAX INVOICE"
    _draw_header(c, width, height, company_name, title,
                 f"Bill: {sale.bill_number or NA}  Date: {_fmt_date(trip.date)}")

    y = height - 34 * mm
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(15 * mm, y, "Billed To")
    c.drawString(width / 2, y, "Trip")
    c.setFont("Helvetica", 9)
    c.drawString(15 * mm, y - 6 * mm, (sale.client.name if sale.client else None) or NA)
    c.drawString(width / 2, y - 6 * mm, f"Trip: {trip.trip_id or trip.key}")
    vehicle = (trip.vehicle.vehicle_number if trip.vehicle else None) or NA
    c.drawString(width / 2, y - 11 * mm, f"Vehicle: {vehicle}  Place: {trip.place or NA}")
    y -= 20 * mm

    if sale.is_receipt:
        data = [["Description", "Amount"], ["Payment received", fmt_money(sale.received_amount, currency)]]
        widths = [130 * mm, 50 * mm]
    else:
        data = [
            ["Description", "Birds", "Weight (kg)", "Avg (kg)", "Rate", "Amount"],
            ["Live birds", str(sale.birds), f"{sale.weight:.2f}", f"{sale.avg_weight:.2f}",
             fmt_money(sale.rate, currency), fmt_money(sale.amount, currency)],
        ]
        widths = [50 * mm, 20 * mm, 28 * mm, 22 * mm, 28 * mm, 32 * mm]
    y = _flow(c, _table(data, widths), y, width, height)

    totals = [
        ["Amount", fmt_money(sale.amount, currency)],
        ["Cash paid", fmt_money(sale.cash_paid, currency)],
        ["Online paid", fmt_money(sale.online_paid, currency)],
        ["Discount", fmt_money(sale.discount, currency)],
        ["Balance", fmt_money(sale.balance, currency)],
    ]
    table = Table(totals, colWidths=[40 * mm, 40 * mm], hAlign="RIGHT")
    table.setStyle(TableStyle([
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("LINEABOVE", (0, -1), (-1, -1), 0.5, DARK),
    ]))
    _, th = table.wrapOn(c, width, height)
    table.drawOn(c, width - 95 * mm, y - th)
    y -= th + 8 * mm

    words_amount = sale.received_amount if sale.is_receipt else sale.amount
    c.setFont("Helvetica-Bold", 9)
    c.drawString(15 * mm, y, "Amount in words:")
    c.setFont("Helvetica", 9)
    c.drawString(15 * mm, y - 5 * mm, amount_in_words(words_amount))

    c.setFillColor(GRAY)
    c.setFont("Helvetica", 8)
    c.drawString(15 * mm, 12 * mm, f"Generated {datetime.now().strftime('%d/%m/%Y %H:%M')}")
    c.drawRightString(width - 15 * mm, 12 * mm, f"For {company_name}")

    c.showPage()
    c.save()
    return buf.getvalue()


def render_trip_report_pdf(trip: Trip, company_name: str, currency: str = "Rs.") -> bytes:
    """Full trip ledger as a PDF. Returns PDF bytes."""
    sheet = extract_trip_sheet(trip)
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    _draw_header(c, width, height, company_name, f"TRIP {trip.trip_id or trip.key}",
                 f"Status: {trip.status.value}  Date: {sheet['basic_info']['DATE']}")
    y = height - 32 * mm

    info = [[label, str(value)] for label, value in sheet["basic_info"].items()]
    y = _flow(c, _table([["Trip", ""]] + info, [60 * mm, 120 * mm]), y, width, height)

    y = _heading(c, "Purchases", y, width, height)
    rows = [["Supplier", "DC No", "Birds", "Weight", "Avg", "Rate", "Amount"]]
    for p in sheet["purchases"]:
        rows.append([p["SUP"], p["DC NO"], p["BIRDS"], f"{p['WEIGHT']:.2f}", f"{p['AVG']:.2f}",
                     f"{p['RATE']:.2f}", fmt_money(p["AMOUNT"], currency)])
    y = _flow(c, _table(rows, [40 * mm, 28 * mm, 18 * mm, 22 * mm, 18 * mm, 20 * mm, 34 * mm]), y, width, height)

    y = _heading(c, "Sales", y, width, height)
    rows = [["Customer", "Bill", "Birds", "Weight", "Rate", "Amount", "Cash", "Online", "Disc"]]
    for s in sheet["sales"]:
        rows.append([s["DELIVERY DETAILS"], s["BILL NO"], s["BIRDS"], f"{s['WEIGHT']:.2f}", f"{s['RATE']:.2f}",
                     f"{s['TOTAL']:.2f}", f"{s['CASH']:.2f}", f"{s['ONLINE']:.2f}", f"{s['DISC']:.2f}"])
    y = _flow(c, _table(rows, [34 * mm, 24 * mm, 13 * mm, 18 * mm, 15 * mm, 22 * mm, 18 * mm, 18 * mm, 18 * mm]),
              y, width, height)

    if trip.stocks:
        y = _heading(c, "Stock", y, width, height)
        rows = [["Birds", "Weight", "Avg", "Rate", "Value", "Notes"]]
        for s in trip.stocks:
            rows.append([s.birds, f"{s.weight:.2f}", f"{s.avg_weight:.2f}", f"{s.rate:.2f}",
                         fmt_money(s.value, currency), (s.notes or "")[:40]])
        y = _flow(c, _table(rows, [18 * mm, 22 * mm, 18 * mm, 20 * mm, 34 * mm, 68 * mm]), y, width, height)

    if trip.expenses:
        y = _heading(c, "Expenses", y, width, height)
        rows = [["Category", "Description", "Amount"]]
        for e in trip.expenses:
            rows.append([e.category or NA, (e.description or "")[:60], fmt_money(e.amount, currency)])
        y = _flow(c, _table(rows, [40 * mm, 100 * mm, 40 * mm]), y, width, height)

    if trip.diesel.stations:
        y = _heading(c, "Diesel", y, width, height)
        rows = [["Station", "Volume", "Rate", "Amount"]]
        for station in sheet["diesel"]["STATIONS"]:
            rows.append([station["NAME"], f"{station['VOL']:.2f}", f"{station['RATE']:.2f}",
                         fmt_money(station["AMT"], currency)])
        y = _flow(c, _table(rows, [70 * mm, 35 * mm, 35 * mm, 40 * mm]), y, width, height)

    ledger = ledger_service.snapshot(trip)
    summary = trip.summary
    y = _heading(c, "Summary", y, width, height)
    rows = [
        ["Item", "Value"],
        ["Birds purchased", ledger.total_purchased_birds],
        ["Birds sold", ledger.total_sold_birds],
        ["Birds in stock", ledger.total_stock_birds],
        ["Birds transferred", ledger.transferred_birds],
        ["Mortality", summary.mortality],
        ["Purchase amount", fmt_money(summary.total_purchase_amount, currency)],
        ["Sales amount", fmt_money(summary.total_sales_amount, currency)],
        ["Expenses", fmt_money(summary.total_expenses, currency)],
        ["Diesel", fmt_money(summary.total_diesel_amount, currency)],
        ["Net profit", fmt_money(summary.net_profit, currency)],
    ]
    _flow(c, _table(rows, [90 * mm, 90 * mm]), y, width, height)

    c.showPage()
    c.save()
    return buf.getvalue()
