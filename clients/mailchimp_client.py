"""
Mailchimp API Client
"""
import hashlib
import httpx
from typing import Dict, List, Optional, Any

from config import SyncConfig, settings
from utils.log import log


class MailchimpError(Exception):
    """Base class for Mailchimp client errors"""


class MailchimpTransportError(MailchimpError):
    """The request never got a response (connection, timeout, ...)"""


class MailchimpClient:
    """Client for upserting buyers and applying tags in a Mailchimp audience"""

    def __init__(
        self,
        api_key: str,
        audience_id: str,
        create_if_missing: bool = False,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = (api_key or "").strip()
        self.list_id = (audience_id or "").strip()
        self.create_if_missing = create_if_missing
        self.timeout = timeout or settings.mailchimp_timeout
        self.auth = ("user", self.api_key)  # Mailchimp uses basic auth with API key as password
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        config: SyncConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "MailchimpClient":
        """Build a client from the saved module settings"""
        return cls(
            api_key=config.mailchimp_api_key,
            audience_id=config.mailchimp_audience_id,
            create_if_missing=config.create_if_missing,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        """API key and audience set, and the key carries its data center suffix"""
        return bool(self.api_key and self.list_id and "-" in self.api_key)

    @property
    def data_center(self) -> str:
        """Data center ("usX") taken from the API key suffix"""
        return self.api_key.rsplit("-", 1)[-1]

    @property
    def api_url(self) -> str:
        return f"https://{self.data_center}.api.mailchimp.com/3.0"

    @staticmethod
    def get_subscriber_hash(email: str) -> str:
        """
        Get MD5 hash of lowercase email for Mailchimp subscriber ID

        Args:
            email: Email address

        Returns:
            MD5 hash of lowercase email
        """
        return hashlib.md5(email.lower().encode()).hexdigest()

    def member_url(self, email: str) -> str:
        return f"{self.api_url}/lists/{self.list_id}/members/{self.get_subscriber_hash(email)}"

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, json_data: Dict) -> httpx.Response:
        """Make HTTP request to Mailchimp API. Response status is not interpreted."""
        try:
            response = await client.request(
                method=method,
                url=url,
                auth=self.auth,
                headers={"Content-Type": "application/json"},
                json=json_data,
            )
        except httpx.TransportError as e:
            log.error(f"Mailchimp transport error: {e}")
            raise MailchimpTransportError(str(e) or e.__class__.__name__) from e

        log.debug(f"Mailchimp {method} {url} -> {response.status_code}")
        return response

    def build_member_payload(self, email: str, first_name: str, last_name: str) -> Dict[str, Any]:
        return {
            "email_address": email,
            # Only applies to NEW members, existing status is preserved
            "status_if_new": "subscribed" if self.create_if_missing else "pending",
            "merge_fields": {"FNAME": first_name, "LNAME": last_name},
        }

    @staticmethod
    def build_tags_payload(tags: List[str]) -> Dict[str, Any]:
        return {"tags": [{"name": tag, "status": "active"} for tag in tags]}

    async def subscribe(
        self,
        email: str,
        tags: List[str],
        first_name: str = "",
        last_name: str = "",
    ) -> bool:
        """
        Upsert a member in the audience and apply tags

        Args:
            email: Member email address
            tags: Tag names to set active
            first_name: First name (FNAME)
            last_name: Last name (LNAME)

        Returns:
            False if the client is not configured (no request is made), True otherwise

        Raises:
            MailchimpTransportError: if a request could not be completed
        """
        if not self.is_configured:
            log.error("Mailchimp config invalid or incomplete.")
            return False

        url = self.member_url(email)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            # Use PUT to upsert (create or update)
            await self._request(client, "PUT", url, self.build_member_payload(email, first_name, last_name))

            if tags:
                await self._request(client, "POST", f"{url}/tags", self.build_tags_payload(tags))

        return True
