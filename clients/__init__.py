"""API clients for Mailchimp"""
from .mailchimp_client import MailchimpClient, MailchimpError, MailchimpTransportError

__all__ = ["MailchimpClient", "MailchimpError", "MailchimpTransportError"]
