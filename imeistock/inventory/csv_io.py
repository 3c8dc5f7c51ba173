"""
CSV import/export of inventory entries
"""
import csv
import io
import logging
import math
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation

from imeistock.core.exceptions import EmptyImport

logger = logging.getLogger('imeistock.inventory')

CSV_HEADERS = [
    'IMEI', 'Brand', 'Model', 'Seller', 'Booking Person',
    'Inward Date', 'Inward Amount', 'Buyer', 'Outward Date', 'Outward Amount',
]

# Header -> entry field
HEADER_FIELDS = {
    'IMEI': 'imei',
    'Brand': 'brand',
    'Model': 'model',
    'Seller': 'seller',
    'Booking Person': 'booking_person',
    'Inward Date': 'inward_date',
    'Inward Amount': 'inward_amount',
    'Buyer': 'buyer',
    'Outward Date': 'outward_date',
    'Outward Amount': 'outward_amount',
}

DATE_FIELDS = ('inward_date', 'outward_date')
AMOUNT_FIELDS = ('inward_amount', 'outward_amount')

# Spreadsheet serial day 0
SERIAL_DATE_EPOCH = date(1899, 12, 30)
# Entry amounts are stored as DecimalField(max_digits=12, decimal_places=2)
MAX_AMOUNT_INTEGER_DIGITS = 10

EXPORT_FILENAME = 'inventory_data.csv'


def parse_date(value):
    """dd/mm/yyyy, ISO yyyy-mm-dd (with optional time) or a spreadsheet serial number"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None

    try:
        return datetime.strptime(text, '%d/%m/%Y').date()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        pass
    try:
        serial = float(text)
    except ValueError:
        return None
    if not math.isfinite(serial) or serial <= 0:
        return None
    try:
        return SERIAL_DATE_EPOCH + timedelta(days=int(round(serial)))
    except OverflowError:
        return None


def parse_amount(value):
    if value is None:
        return None
    text = str(value).strip().replace(',', '')
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount.adjusted() >= MAX_AMOUNT_INTEGER_DIGITS:
        return None
    try:
        return amount.quantize(Decimal('0.01'))
    except InvalidOperation:
        return None


def format_date(value):
    return value.strftime('%d/%m/%Y') if value else ''


def read_entries_csv(source):
    """
    Parse CSV text (or a text file object) into entry rows.

    Columns are located by header name; rows without an IMEI are dropped.
    Raises EmptyImport when the file holds no header.
    """
    if isinstance(source, bytes):
        source = source.decode('utf-8-sig')
    if isinstance(source, str):
        source = io.StringIO(source.lstrip('\ufeff'))

    reader = csv.reader(source)
    header = next(reader, None)
    if not header or not any(cell.strip() for cell in header):
        raise EmptyImport('The uploaded file is empty.')

    columns = {}
    for index, cell in enumerate(header):
        name = cell.strip().lstrip('\ufeff')
        if name in HEADER_FIELDS and HEADER_FIELDS[name] not in columns:
            columns[HEADER_FIELDS[name]] = index

    rows = []
    dropped = 0
    for record in reader:
        row = {}
        for field in HEADER_FIELDS.values():
            index = columns.get(field)
            raw = record[index] if index is not None and index < len(record) else ''
            if field in DATE_FIELDS:
                row[field] = parse_date(raw)
            elif field in AMOUNT_FIELDS:
                row[field] = parse_amount(raw)
            else:
                row[field] = (raw or '').strip()
        if not row['imei']:
            dropped += 1
            continue
        rows.append(row)

    if dropped:
        logger.warning(f"CSV import dropped {dropped} row(s) without IMEI")
    return rows


def write_entries_csv(rows, target):
    """Write entry rows (dicts keyed by entry field) with dd/mm/yyyy dates"""
    writer = csv.writer(target)
    writer.writerow(CSV_HEADERS)
    for row in rows:
        record = []
        for header in CSV_HEADERS:
            value = row.get(HEADER_FIELDS[header])
            if HEADER_FIELDS[header] in DATE_FIELDS:
                record.append(format_date(value))
            elif value is None:
                record.append('')
            else:
                record.append(value)
        writer.writerow(record)
    return target


def entries_to_csv(rows):
    buffer = io.StringIO()
    write_entries_csv(rows, buffer)
    return buffer.getvalue()
