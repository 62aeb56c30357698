import secrets, string, re, logging
from datetime import datetime, timezone
from flask import make_response, jsonify, request
from decouple import config
from pydantic import ValidationError as SchemaError
import requests

from .errors import ValidationError

logger = logging.getLogger(__name__)

BREVO_URL = "https://api.brevo.com/v3/smtp/email"


def utc_now():
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso(value):
    return value.isoformat() if value else None


# CONVERT RESPONSE TO JSON
def jsonifyFormat(responsedata, status_code):
    # Ensure the response data is JSON serializable
    if isinstance(responsedata, dict):
        responsedata = jsonify(responsedata)

    response = make_response(responsedata)
    response.status_code = status_code
    response.headers['Content-Type'] = 'application/json'

    return response


def int_arg(args, name, default):
    """Read an integer query parameter, falling back to ``default`` when absent or not a number."""
    try:
        value = int(args.get(name, default))
    except (TypeError, ValueError):
        return default
    return value


def parse_body(schema):
    """Validate the JSON body against ``schema``.

    Called from inside a view so that the role gate answers before the payload is looked at.
    """
    try:
        return schema.model_validate(request.get_json(silent=True) or {})
    except SchemaError as e:
        raise ValidationError(errors=e.errors(include_url=False, include_context=False, include_input=False))


#FUNCTION TO GENERATE DIGIT CODE
def gen_len_code(length, num_only):

    if num_only:
        alphabet = string.digits
    else:
        alphabet = string.ascii_letters + string.digits

    return ''.join(secrets.choice(alphabet) for i in range(length))


# Function for validating an email
def check_email(email):
    email_regex = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(email_regex, email or ''))


# FUNCTION TO SEND EMAIL USING BREVO API
def send_email(heading, email, name, msg):
    """Send a transactional e-mail through Brevo.

    Returns True when Brevo accepted the message. Delivery is best effort:
    without ``BREVO_KEY`` the message is only logged.
    """
    api_key = config("BREVO_KEY", default="")
    if not api_key:
        logger.info(f"BREVO_KEY not configured, skipping e-mail '{heading}' to {email}")
        return False

    data = {
        "sender": {
            "name": config("MAIL_SENDER_NAME", default="Report Desk"),
            "email": config("MAIL_SENDER_EMAIL", default="noreply@reportdesk.local"),
        },
        "to": [
            {"email": email, "name": name or email},
        ],
        "subject": heading,
        "htmlContent": msg,
    }

    headers = {
        "Accept": "application/json",
        "Api-Key": api_key,
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(BREVO_URL, json=data, headers=headers, timeout=10)
        response.raise_for_status()
        logger.info(f"E-mail '{heading}' sent to {email}")
        return True

    except requests.exceptions.RequestException as e:
        logger.error(f"E-mail '{heading}' to {email} failed: {e}")
        return False
