"""
Contact Repository for the contact-center platform's contacts table

Used to link tickets to contacts and to backfill the client display name.
Lookup values are only ever bound through .eq() filters.
"""
import re
from typing import Any, Dict, Optional, Sequence

from helpdesk.config import get_settings
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

WHATSAPP_SUFFIX = re.compile(r"@s\.whatsapp\.net$")
ACCOUNT_ID = re.compile(r"^\d{6,10}$")
PHONE_NUMBER = re.compile(r"^\+?\d{7,15}$")

CONTACT_FIELDS = "id, name, email, phone_number, identifier, custom_attributes"


def clean_phone_number(phone_number: str) -> str:
    """Strip the WhatsApp JID suffix and surrounding whitespace"""
    return WHATSAPP_SUFFIX.sub("", phone_number.strip())


def is_valid_account_id(account_id: str) -> bool:
    return bool(ACCOUNT_ID.match(account_id or ""))


class ContactRepository:
    """Repository for contacts table lookups"""

    def __init__(self, supabase_client=None):
        if supabase_client is None:
            from supabase import create_client
            self.client = create_client(
                settings.supabase_url,
                settings.supabase_write_key
            )
        else:
            self.client = supabase_client

        self.table_name = "contacts"

    def _first_match(self, fields: str, columns: Sequence[str], value: str) -> Optional[Dict[str, Any]]:
        """First row whose value equals `value` in any of `columns`, tried in order"""
        for column in columns:
            response = self.client.table(self.table_name)\
                .select(fields)\
                .eq(column, value)\
                .limit(1)\
                .execute()

            if response.data:
                return response.data[0]
        return None

    def get_by_id(self, contact_id: int) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.table(self.table_name)\
                .select(CONTACT_FIELDS)\
                .eq("id", contact_id)\
                .limit(1)\
                .execute()

            return response.data[0] if response.data else None

        except Exception as e:
            logger.error(f"Failed to get contact {contact_id}: {e}")
            raise

    def find_by_account(self, account_id: str) -> Optional[Dict[str, Any]]:
        """
        Find a contact by contract number

        Matches the identifier column, then custom_attributes.contract_number.
        Anything other than 6-10 digits is rejected without querying.
        """
        account_id = (account_id or "").strip()
        if not is_valid_account_id(account_id):
            logger.warning(f"Rejected contact lookup for malformed account id {account_id!r}")
            return None

        try:
            return self._first_match(
                CONTACT_FIELDS,
                ("identifier", "custom_attributes->>contract_number"),
                account_id,
            )

        except Exception as e:
            logger.error(f"Failed to find contact for account {account_id}: {e}")
            raise

    def find_or_create_by_phone(self, phone_number: str, name: Optional[str] = None) -> Optional[int]:
        """
        Find a contact by phone number, creating it when missing

        Returns:
            Contact id, or None when the number is malformed or the
            directory is unavailable
        """
        phone = clean_phone_number(phone_number)
        if not PHONE_NUMBER.match(phone):
            logger.warning(f"Rejected contact lookup for malformed phone {phone!r}")
            return None

        try:
            contact = self._first_match("id, name", ("phone_number", "identifier"), phone)

            if contact:
                logger.info(f"Found contact {contact['id']} for phone {phone}")
                return contact["id"]

            created = self.client.table(self.table_name).insert({
                "account_id": settings.agent_account_id,
                "name": name or f"WhatsApp {phone}",
                "phone_number": phone,
                "identifier": phone,
            }).execute()

            if created.data:
                logger.info(f"Created contact {created.data[0]['id']} for phone {phone}")
                return created.data[0]["id"]

            logger.warning(f"Failed to create contact for phone {phone}")
            return None

        except Exception as e:
            logger.error(f"Contact lookup failed for phone {phone}: {e}")
            return None
