"""
IMEI helpers: Luhn validation and extraction from scanned label text
"""
import re

IMEI_LENGTH = 15

# Labelled patterns first so their numbers keep their position in the result
LABELLED_IMEI_PATTERNS = [
    re.compile(r'IMEI1\s*:\s*(\d{15})', re.IGNORECASE),
    re.compile(r'IMEI\s*:\s*(\d{15})', re.IGNORECASE),
    re.compile(r'IMEI\(MEID\)[^:]*:\s*(\d{15})', re.IGNORECASE),
]
BARE_IMEI_PATTERN = re.compile(r'(?<!\d)(\d{15})(?!\d)')

# Retail product barcodes (GS1 China) that look like IMEIs on box labels
PRODUCT_BARCODE_PREFIXES = ('690', '691', '692', '693', '694', '695')


def normalize_imei(value):
    if value is None:
        return ''
    return str(value).strip()


def is_valid_imei(imei):
    """Luhn check over a 15-digit IMEI"""
    if not imei or len(imei) != IMEI_LENGTH or not imei.isdigit():
        return False
    total = 0
    for position, char in enumerate(reversed(imei)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def is_product_barcode(number):
    return number.startswith(PRODUCT_BARCODE_PREFIXES)


def extract_imeis(text):
    """
    Pull IMEI candidates out of free text.

    Returns a list of {'imei', 'valid'} dicts without duplicates and without
    retail product barcodes. Labelled numbers come first, then bare 15-digit
    runs, each group in order of appearance.
    """
    if not text:
        return []

    found = []
    for pattern in LABELLED_IMEI_PATTERNS + [BARE_IMEI_PATTERN]:
        for match in pattern.finditer(text):
            number = match.group(1)
            if number not in found:
                found.append(number)

    return [
        {'imei': number, 'valid': is_valid_imei(number)}
        for number in found
        if not is_product_barcode(number)
    ]
