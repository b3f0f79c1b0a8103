import csv
import io
import re
from datetime import date

CSV_HEADERS = [
    "First Name",
    "Last Name",
    "City",
    "Degree",
    "Specialties",
    "Years of Experience",
    "Phone Number",
]


def format_phone_number(phone_number):
    """Format a 10-digit number as (XXX) XXX-XXXX; anything else is returned as-is"""
    digits = str(phone_number)
    if not re.fullmatch(r'\d{10}', digits):
        return digits
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def phone_link(phone_number):
    return f"tel:+1{phone_number}"


def default_export_filename(today=None):
    return f"advocates-{(today or date.today()).isoformat()}.csv"


def advocate_row(advocate):
    return [
        advocate['firstName'],
        advocate['lastName'],
        advocate['city'],
        advocate['degree'],
        "; ".join(advocate.get('specialties') or []),
        str(advocate['yearsOfExperience']),
        format_phone_number(advocate['phoneNumber']),
    ]


def advocates_to_csv(advocates):
    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for advocate in advocates:
        writer.writerow(advocate_row(advocate))
    return buffer.getvalue().rstrip("\n")


def write_csv(advocates, path):
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(advocates_to_csv(advocates))
    return path
