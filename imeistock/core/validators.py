"""
Validation helpers for e-mail addresses, passwords and mobile numbers
"""
import re

from django.core.exceptions import ValidationError

# Disposable / placeholder e-mail domains
DUMMY_EMAIL_DOMAINS = [
    'example.com',
    'test.com',
    'test.test',
    'dummy.com',
    'fake.com',
    'invalid.com',
    'mailinator.com',
    '10minutemail.com',
    'guerrillamail.com',
    'tempmail.com',
    'throwaway.email',
    'temp-mail.org',
    'yopmail.com',
    'getnada.com',
    'maildrop.cc',
    'mohmal.com',
    'sharklasers.com',
    'trashmail.com',
]

DUMMY_EMAIL_PATTERNS = [
    re.compile(r'^test@', re.IGNORECASE),
    re.compile(r'^dummy@', re.IGNORECASE),
    re.compile(r'^fake@', re.IGNORECASE),
    re.compile(r'^invalid@', re.IGNORECASE),
    re.compile(r'^temp@', re.IGNORECASE),
    re.compile(r'^tmp@', re.IGNORECASE),
    re.compile(r'^123@', re.IGNORECASE),
    re.compile(r'^abc@', re.IGNORECASE),
    re.compile(r'^xyz@', re.IGNORECASE),
    re.compile(r'@test\.', re.IGNORECASE),
    re.compile(r'@dummy\.', re.IGNORECASE),
    re.compile(r'@fake\.', re.IGNORECASE),
]

EMAIL_FORMAT = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

SPECIAL_CHARS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?`~]")

# Allowed digit counts (min, max) per country calling code
PHONE_VALIDATION_RULES = {
    '+1': (10, 10),     # US/Canada
    '+44': (10, 10),    # UK
    '+91': (10, 10),    # India
    '+86': (11, 11),    # China
    '+81': (10, 11),    # Japan
    '+49': (10, 11),    # Germany
    '+33': (9, 9),      # France
    '+39': (9, 10),     # Italy
    '+34': (9, 9),      # Spain
    '+61': (9, 9),      # Australia
    '+27': (9, 9),      # South Africa
    '+55': (10, 11),    # Brazil
    '+52': (10, 10),    # Mexico
    '+92': (10, 10),    # Pakistan
    '+971': (9, 9),     # UAE
    '+966': (9, 9),     # Saudi Arabia
    '+65': (8, 8),      # Singapore
    '+60': (9, 10),     # Malaysia
    '+62': (9, 11),     # Indonesia
    '+84': (9, 10),     # Vietnam
    '+66': (9, 9),      # Thailand
    '+63': (10, 10),    # Philippines
    '+82': (9, 11),     # South Korea
    '+7': (10, 10),     # Russia/Kazakhstan
    '+90': (10, 10),    # Turkey
    '+20': (10, 10),    # Egypt
    '+234': (10, 11),   # Nigeria
    '+254': (9, 9),     # Kenya
    '+212': (9, 9),     # Morocco
    '+351': (9, 9),     # Portugal
    '+31': (9, 9),      # Netherlands
    '+32': (9, 9),      # Belgium
    '+41': (9, 9),      # Switzerland
    '+46': (9, 9),      # Sweden
    '+47': (8, 8),      # Norway
    '+45': (8, 8),      # Denmark
    '+358': (9, 10),    # Finland
    '+48': (9, 9),      # Poland
    '+36': (9, 9),      # Hungary
    '+40': (10, 10),    # Romania
    '+30': (10, 10),    # Greece
}

STRENGTH_LABELS = [
    ('Very Weak', 'red'),
    ('Weak', 'orange'),
    ('Fair', 'yellow'),
    ('Good', 'blue'),
    ('Strong', 'green'),
]


# ==================== E-MAIL ====================

def is_valid_email_format(email):
    return bool(email) and bool(EMAIL_FORMAT.match(email))


def is_dummy_email(email):
    """True for malformed, disposable or placeholder addresses"""
    if not email or not isinstance(email, str):
        return True

    normalized = email.lower().strip()
    if not is_valid_email_format(normalized):
        return True

    domain = normalized.split('@')[1]
    if not domain:
        return True

    if any(domain == dummy or domain.endswith(f'.{dummy}') for dummy in DUMMY_EMAIL_DOMAINS):
        return True

    if any(pattern.search(normalized) for pattern in DUMMY_EMAIL_PATTERNS):
        return True

    if ('..' in normalized or normalized.startswith('.') or normalized.startswith('@')
            or normalized.endswith('.') or normalized.endswith('@')):
        return True

    return False


def validate_email_address(email):
    """Returns an error message, or None when the address is acceptable"""
    if not email or not email.strip():
        return 'Email is required'
    if not is_valid_email_format(email.strip()):
        return 'Please enter a valid email address'
    if is_dummy_email(email):
        return 'Please use a real email address. Dummy or test emails are not allowed.'
    return None


# ==================== PASSWORD ====================

def password_criteria(password):
    password = password or ''
    return {
        'has_lowercase': bool(re.search(r'[a-z]', password)),
        'has_uppercase': bool(re.search(r'[A-Z]', password)),
        'has_number': bool(re.search(r'[0-9]', password)),
        'has_special_char': bool(SPECIAL_CHARS.search(password)),
        'has_min_length': len(password) >= 8,
    }


def unmet_criteria_messages(criteria):
    messages = []
    if not criteria['has_lowercase']:
        messages.append('At least one lowercase letter (a-z)')
    if not criteria['has_uppercase']:
        messages.append('At least one uppercase letter (A-Z)')
    if not criteria['has_number']:
        messages.append('At least one number (0-9)')
    if not criteria['has_special_char']:
        messages.append('At least one special character (!@#$%^&*...)')
    if not criteria['has_min_length']:
        messages.append('At least 8 characters long')
    return messages


def password_strength(password):
    """
    Score a password from 0 (Very Weak) to 4 (Strong).

    One point per criterion met, plus one each for reaching 12 and 16
    characters, capped at 4.
    """
    if not password:
        label, color = STRENGTH_LABELS[0]
        return {'score': 0, 'label': label, 'color': color}

    criteria = password_criteria(password)
    score = sum(1 for met in criteria.values() if met)
    if len(password) >= 12:
        score = min(score + 1, 5)
    if len(password) >= 16:
        score = min(score + 1, 5)
    score = min(score, 4)

    label, color = STRENGTH_LABELS[score]
    return {'score': score, 'label': label, 'color': color}


class PasswordStrengthValidator:
    """Django password validator requiring every strength criterion"""

    def validate(self, password, user=None):
        messages = unmet_criteria_messages(password_criteria(password))
        if messages:
            raise ValidationError(
                ['Password does not meet the requirements.'] + messages,
                code='password_too_weak',
            )

    def get_help_text(self):
        return ('Your password must be at least 8 characters long and contain a lowercase letter, '
                'an uppercase letter, a number and a special character.')


# ==================== MOBILE ====================

def validate_phone_number(mobile, country_code):
    """Returns an error message, or None when the number fits the country rules"""
    if not mobile or not mobile.strip():
        return 'Mobile number is required'

    digits = re.sub(r'\D', '', mobile)
    if not digits:
        return 'Mobile number must contain digits'

    rule = PHONE_VALIDATION_RULES.get(country_code)
    if not rule:
        if len(digits) < 7 or len(digits) > 15:
            return 'Mobile number must be between 7 and 15 digits'
        return None

    min_length, max_length = rule
    if len(digits) < min_length:
        return f'Mobile number must be at least {min_length} digits for {country_code}'
    if len(digits) > max_length:
        return f'Mobile number must be at most {max_length} digits for {country_code}'
    return None
