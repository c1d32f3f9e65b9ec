import re
import phonenumbers
from flask import current_app, has_app_context
from wtforms import ValidationError
from wtforms.validators import StopValidation

DEFAULT_REGION = 'PH'
IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png', 'webp'}

# JSON bodies deliver real booleans; False must count as unchecked.
FALSE_VALUES = ('false', 'False', '', '0', 'off', False)


def _region():
    if has_app_context():
        return current_app.config.get('PHONE_REGION', DEFAULT_REGION)
    return DEFAULT_REGION


def validate_phone(form, field):
    """Validate Philippine mobile/landline number"""
    if field.data:
        try:
            parsed_number = phonenumbers.parse(field.data, _region())
        except phonenumbers.NumberParseException:
            raise ValidationError('Invalid phone number format')
        if not phonenumbers.is_valid_number(parsed_number):
            raise ValidationError('Invalid phone number format')


def normalize_phone(phone_number):
    """
    Normalize phone number to E164 format (+63XXXXXXXXXX)
    Supports formats:
    - 09171234567 -> +639171234567
    - 639171234567 -> +639171234567
    - +63 917 123 4567 -> +639171234567
    Returns the stripped input when it can't be parsed.
    """
    if not phone_number:
        return None

    cleaned = re.sub(r'[^\d+]', '', str(phone_number).strip())
    if cleaned.startswith('63') and not cleaned.startswith('+'):
        cleaned = '+' + cleaned

    try:
        parsed_number = phonenumbers.parse(cleaned, _region())
    except phonenumbers.NumberParseException:
        return str(phone_number).strip()
    if phonenumbers.is_valid_number(parsed_number):
        return phonenumbers.format_number(parsed_number, phonenumbers.PhoneNumberFormat.E164)
    return str(phone_number).strip()


def sanitize_filename(filename):
    """Sanitize filename for safe upload"""
    # Remove path components
    filename = filename.split('/')[-1].split('\\')[-1]

    # Remove dangerous characters
    filename = re.sub(r'[^\w\-_\.]', '_', filename)

    # Limit length
    if len(filename) > 255:
        name, ext = filename.rsplit('.', 1)
        filename = name[:250] + '.' + ext

    return filename


def validate_file_size(file, max_size_mb):
    """Validate file size"""
    file.seek(0, 2)  # Seek to end
    size = file.tell()
    file.seek(0)  # Reset position

    max_size_bytes = max_size_mb * 1024 * 1024
    return size <= max_size_bytes


class MaxImageSize:
    """WTForms validator: upload size limit, MAX_IMAGE_SIZE_MB from config by default"""

    def __init__(self, max_size_mb=None):
        self.max_size_mb = max_size_mb

    def __call__(self, form, field):
        upload = field.data
        if not upload or not getattr(upload, 'filename', None):
            return
        limit = self.max_size_mb
        if limit is None:
            limit = current_app.config.get('MAX_IMAGE_SIZE_MB', 5)
        stream = getattr(upload, 'stream', upload)
        if not validate_file_size(stream, limit):
            raise ValidationError(f'Image must be {limit} MB or smaller')


class ValueRequired:
    """
    Like InputRequired, but a JSON 0 or false counts as a value.
    Stops the validation chain when the key is missing or blank.
    """

    field_flags = {'required': True}

    def __init__(self, message=None):
        self.message = message

    def __call__(self, form, field):
        raw = field.raw_data
        if raw and raw[0] is not None and str(raw[0]).strip() != '':
            return
        message = self.message or field.gettext('This field is required.')
        field.errors[:] = []
        raise StopValidation(message)
