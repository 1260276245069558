"""
Shape conversions between Twenty CRM records and the dashboard.

Twenty stores composite fields (email, phone, currency, address) as nested
objects; the dashboard and the local leads table use flat values.
"""

import json
import math
from datetime import datetime, timezone


def format_enum_label(value):
    """SALES_REP_ONE -> 'Sales Rep One'"""
    return ' '.join(word.capitalize() for word in (value or '').lower().split('_') if word)


def enum_options(values):
    return [{'value': value, 'label': format_enum_label(value)} for value in values or []]


def blocknote_body(text):
    """Plain text as a single BlockNote paragraph"""
    return json.dumps([
        {
            'type': 'paragraph',
            'content': [{'type': 'text', 'text': text or ''}]
        }
    ])


def task_body_v2(text):
    """RichTextV2 input for task bodies: markdown plus BlockNote"""
    return {
        'markdown': (text or '') + '\n',
        'blocknote': blocknote_body(text),
    }


def person_name(name):
    """Join a {firstName, lastName} object, or pass a plain string through"""
    if isinstance(name, dict):
        joined = ' '.join(part for part in (name.get('firstName'), name.get('lastName')) if part)
        return joined or None
    return name or None


def _composite(value, key):
    if isinstance(value, dict):
        return value.get(key) or None
    return value or None


def normalize_lead_node(node):
    """Compact lead shape returned by TwentyClient.get_leads"""
    return {
        'id': node['id'],
        'name': person_name(node.get('name')) or 'Unknown',
        'email': _composite(node.get('email'), 'primaryEmail'),
        'phone': _composite(node.get('phone'), 'primaryPhoneNumber'),
        'city': node.get('city') or None,
        'createdAt': node.get('createdAt'),
        'updatedAt': node.get('updatedAt'),
    }


def lead_row_from_node(record):
    """
    Local lead columns from a CRM lead node or webhook record

    Accepts both the compact get_leads shape (flat email/phone) and raw
    records with composite fields and an address object.
    """
    address = record.get('address') if isinstance(record.get('address'), dict) else {}

    row = {
        'name': person_name(record.get('name')) or 'Unknown',
        'email': _composite(record.get('email') or record.get('emails'), 'primaryEmail'),
        'phone': _composite(record.get('phone') or record.get('phones'), 'primaryPhoneNumber'),
        'city': record.get('city') or address.get('addressCity') or None,
        'address': address.get('addressStreet1') or record.get('adress') or None,
        'state': address.get('addressState') or None,
        'zip_code': address.get('addressPostcode') or record.get('zipCode') or None,
    }
    if record.get('notes') and isinstance(record['notes'], str):
        row['notes'] = record['notes']
    return row


def _to_micros(value):
    try:
        dollars = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(dollars) or math.isinf(dollars):
        return None
    return round(dollars * 1_000_000)


def build_update_payload(updates):
    """
    LeadUpdateInput from dashboard edits

    email/phone become composite objects, estValue (dollars) becomes a USD
    currency amount in micros and is dropped when it is not a number.
    """
    payload = {}
    for key, value in (updates or {}).items():
        if key == 'email':
            payload['email'] = {'primaryEmail': value, 'additionalEmails': None}
        elif key == 'phone':
            payload['phone'] = {'primaryPhoneNumber': value, 'additionalPhones': None}
        elif key == 'estValue':
            micros = _to_micros(value)
            if micros is not None:
                payload['estValue'] = {'amountMicros': micros, 'currencyCode': 'USD'}
        else:
            payload[key] = value
    return payload


def build_local_update_payload(fields):
    """LeadUpdateInput mirroring an edit made to a local lead row"""
    payload = {}
    if fields.get('name'):
        payload['name'] = fields['name']
    if 'email' in fields:
        payload['email'] = {'primaryEmail': fields['email']}
    if 'phone' in fields:
        payload['phone'] = {'primaryPhoneNumber': fields['phone']}
    if fields.get('city'):
        payload['city'] = fields['city']
    elif fields.get('address'):
        payload['city'] = fields['address']
    return payload


def parse_timestamp(value):
    """
    ISO-8601 timestamp from the CRM as a naive UTC datetime

    Returns None for empty or unparseable values.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# CRM person status -> local lead status
TWENTY_STATUS_MAP = {
    'new': 'new',
    'contacted': 'contacted',
    'qualified': 'qualified',
    'proposal': 'quoted',
    'won': 'won',
    'lost': 'lost',
}


def map_twenty_status(value):
    """Local status for a CRM status value, 'new' when unknown"""
    return TWENTY_STATUS_MAP.get(str(value or '').lower(), 'new')
