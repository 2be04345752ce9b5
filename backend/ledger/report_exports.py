"""Excel and PDF renditions of the party balance report and account statements."""

from collections import Counter
from decimal import Decimal
from io import BytesIO
from typing import Mapping, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle


__all__ = [
    "generate_party_balance_workbook",
    "generate_party_balance_pdf",
    "generate_account_statement_workbook",
    "generate_account_statement_pdf",
]


HEADER_FILL = PatternFill(start_color="305496", end_color="305496", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
TOTAL_FILL = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
CURRENCY_NUMBER_FORMAT = "#,##0.00"

STATUS_LABELS = {
    "owes_us": "Parties Owing Us",
    "we_owe_them": "Parties We Owe",
    "settled": "Settled Parties",
}

STATUS_ORDER = ("owes_us", "we_owe_them", "settled")

PARTY_TYPE_LABELS = {
    "customer": "Customer",
    "supplier": "Supplier",
    "both": "Customer & Supplier",
}

HEADER_TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#305496")),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#CCCCCC")),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 4),
    ("TOPPADDING", (0, 0), (-1, 0), 4),
    ("TOPPADDING", (0, 1), (-1, -1), 2),
    ("BOTTOMPADDING", (0, 1), (-1, -1), 2),
]


def _to_decimal(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _auto_size_columns(worksheet) -> None:
    """Adjust column widths to fit their content nicely."""

    for column_cells in worksheet.columns:
        column_letter = get_column_letter(column_cells[0].column)
        max_length = 0
        for cell in column_cells:
            if cell.value is None:
                continue
            max_length = max(max_length, len(str(cell.value)))
        worksheet.column_dimensions[column_letter].width = min(max_length + 2, 45)


def _style_header_row(worksheet) -> None:
    for cell in worksheet[worksheet.max_row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")


def _format_currency(value) -> str:
    return f"{_to_decimal(value):,.2f}"


def _workbook_bytes(workbook) -> bytes:
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _summarize_party_balances(parties: Sequence[Mapping]) -> tuple[Counter, Decimal, Decimal]:
    """Return status counts plus the totals owed to us and owed by us."""

    status_counts: Counter = Counter()
    owed_to_us = Decimal("0")
    we_owe = Decimal("0")
    for party in parties:
        status_counts[(party.get("status") or "settled").lower()] += 1
        balance = _to_decimal(party.get("balance"))
        if balance > 0:
            owed_to_us += balance
        elif balance < 0:
            we_owe += abs(balance)
    return status_counts, owed_to_us, we_owe


def generate_party_balance_workbook(parties: Sequence[Mapping]) -> bytes:
    """Return an Excel workbook summarising party balances."""

    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Party Balances"

    worksheet["A1"] = "Party Balance Report"
    worksheet["A1"].font = Font(size=14, bold=True)

    status_counts, owed_to_us, we_owe = _summarize_party_balances(parties)

    worksheet.append([])
    worksheet.append(["Status Summary"])
    worksheet[worksheet.max_row][0].font = Font(bold=True)
    worksheet.append(["Status", "Parties"])
    _style_header_row(worksheet)
    for key in STATUS_ORDER:
        worksheet.append([STATUS_LABELS[key], int(status_counts.get(key, 0))])

    worksheet.append([])
    worksheet.append(["Owed To Us", float(owed_to_us)])
    worksheet.append(["We Owe", float(we_owe)])
    for row in worksheet.iter_rows(min_row=worksheet.max_row - 1, max_row=worksheet.max_row):
        row[0].font = Font(bold=True)
        row[0].fill = TOTAL_FILL
        row[1].number_format = CURRENCY_NUMBER_FORMAT
        row[1].alignment = Alignment(horizontal="right")

    worksheet.append([])
    worksheet.append(["Party Details"])
    worksheet[worksheet.max_row][0].font = Font(bold=True)
    worksheet.append(["Name", "Type", "Email", "Phone", "Balance", "Overdue", "Status"])
    _style_header_row(worksheet)

    if parties:
        for party in parties:
            worksheet.append(
                [
                    party.get("name") or "",
                    PARTY_TYPE_LABELS.get(party.get("party_type"), ""),
                    party.get("email") or "",
                    party.get("phone") or "",
                    float(_to_decimal(party.get("balance"))),
                    float(_to_decimal(party.get("overdue_amount"))),
                    STATUS_LABELS.get((party.get("status") or "").lower(), ""),
                ]
            )
            row = worksheet[worksheet.max_row]
            for cell in (row[4], row[5]):
                cell.number_format = CURRENCY_NUMBER_FORMAT
                cell.alignment = Alignment(horizontal="right")
    else:
        worksheet.append(["No party balances available.", "", "", "", "", "", ""])

    _auto_size_columns(worksheet)
    return _workbook_bytes(workbook)


def generate_party_balance_pdf(parties: Sequence[Mapping]) -> bytes:
    """Return a PDF document summarising party balances."""

    buffer = BytesIO()
    document = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title="Party Balance Report",
    )
    styles = getSampleStyleSheet()
    story = [Paragraph("Party Balance Report", styles["Title"]), Spacer(1, 6 * mm)]

    status_counts, owed_to_us, we_owe = _summarize_party_balances(parties)

    summary_data: list[list[str]] = [["Status", "Parties"]]
    for key in STATUS_ORDER:
        summary_data.append([STATUS_LABELS[key], str(int(status_counts.get(key, 0)))])
    summary_data.append(["Owed To Us", _format_currency(owed_to_us)])
    summary_data.append(["We Owe", _format_currency(we_owe)])

    summary_table = Table(summary_data, colWidths=[80 * mm, 40 * mm])
    summary_table.setStyle(
        TableStyle(
            HEADER_TABLE_STYLE
            + [
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                ("BACKGROUND", (0, -2), (-1, -1), colors.HexColor("#F2F2F2")),
                ("FONTNAME", (0, -2), (-1, -1), "Helvetica-Bold"),
            ]
        )
    )
    story.append(summary_table)
    story.append(Spacer(1, 6 * mm))

    details_data: list[list[str]] = [["Name", "Type", "Email", "Phone", "Balance", "Overdue", "Status"]]
    if parties:
        for party in parties:
            details_data.append(
                [
                    party.get("name") or "",
                    PARTY_TYPE_LABELS.get(party.get("party_type"), ""),
                    party.get("email") or "",
                    party.get("phone") or "",
                    _format_currency(party.get("balance")),
                    _format_currency(party.get("overdue_amount")),
                    STATUS_LABELS.get((party.get("status") or "").lower(), ""),
                ]
            )
    else:
        details_data.append(["No party balances available.", "", "", "", "", "", ""])

    details_table = Table(
        details_data,
        colWidths=[34 * mm, 26 * mm, 36 * mm, 22 * mm, 22 * mm, 22 * mm, 28 * mm],
        repeatRows=1,
    )
    details_table.setStyle(TableStyle(HEADER_TABLE_STYLE + [("ALIGN", (4, 1), (5, -1), "RIGHT")]))
    story.append(details_table)

    document.build(story)
    pdf = buffer.getvalue()
    buffer.close()
    return pdf


def _statement_rows(statement: Mapping) -> list[list]:
    rows = []
    for entry in statement.get("transactions", []):
        rows.append(
            [
                str(entry.get("transaction_date") or ""),
                entry.get("description") or "",
                entry.get("reference_type") or "",
                _to_decimal(entry.get("amount_in")),
                _to_decimal(entry.get("amount_out")),
                _to_decimal(entry.get("balance_after")),
            ]
        )
    return rows


def generate_account_statement_workbook(statement: Mapping) -> bytes:
    """Return an Excel statement of one account.

    ``statement`` holds ``account`` (serialized account) and ``transactions``
    (serialized entries, oldest first).
    """

    account = statement.get("account") or {}
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Statement"

    worksheet["A1"] = f"Account Statement: {account.get('account_name', '')}"
    worksheet["A1"].font = Font(size=14, bold=True)
    worksheet["A2"] = f"Opening balance: {_format_currency(account.get('opening_balance'))}"
    worksheet["A2"].font = Font(italic=True)
    worksheet.append([])

    worksheet.append(["Date", "Description", "Reference", "In", "Out", "Balance"])
    _style_header_row(worksheet)

    for values in _statement_rows(statement):
        worksheet.append(values[:3] + [float(value) for value in values[3:]])
        row = worksheet[worksheet.max_row]
        for cell in row[3:]:
            cell.number_format = CURRENCY_NUMBER_FORMAT
            cell.alignment = Alignment(horizontal="right")

    worksheet.append([])
    worksheet.append(["", "Closing Balance", "", "", "", float(_to_decimal(account.get("current_balance")))])
    total_row = worksheet[worksheet.max_row]
    total_row[1].font = Font(bold=True)
    total_row[1].fill = TOTAL_FILL
    total_row[5].font = Font(bold=True)
    total_row[5].fill = TOTAL_FILL
    total_row[5].number_format = CURRENCY_NUMBER_FORMAT

    _auto_size_columns(worksheet)
    return _workbook_bytes(workbook)


def generate_account_statement_pdf(statement: Mapping) -> bytes:
    """Return a PDF statement of one account."""

    account = statement.get("account") or {}
    buffer = BytesIO()
    document = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title="Account Statement",
    )
    styles = getSampleStyleSheet()
    story = [
        Paragraph(f"Account Statement: {account.get('account_name', '')}", styles["Title"]),
        Spacer(1, 4 * mm),
        Paragraph(f"Opening balance: {_format_currency(account.get('opening_balance'))}", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]

    table_data: list[list[str]] = [["Date", "Description", "Reference", "In", "Out", "Balance"]]
    for values in _statement_rows(statement):
        table_data.append(values[:3] + [_format_currency(value) for value in values[3:]])
    table_data.append(["", "Closing Balance", "", "", "", _format_currency(account.get("current_balance"))])

    table = Table(
        table_data,
        colWidths=[28 * mm, 100 * mm, 35 * mm, 30 * mm, 30 * mm, 32 * mm],
        repeatRows=1,
    )
    table.setStyle(
        TableStyle(
            HEADER_TABLE_STYLE
            + [
                ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
                ("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#F2F2F2")),
                ("FONTNAME", (1, -1), (-1, -1), "Helvetica-Bold"),
            ]
        )
    )
    story.append(table)

    document.build(story)
    pdf = buffer.getvalue()
    buffer.close()
    return pdf
