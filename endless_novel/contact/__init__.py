"""Contact form validation and delivery."""

from endless_novel.contact.service import (
    ContactForm,
    ContactSendError,
    ContactValidationError,
    send_contact_message,
)

__all__ = ["ContactForm", "ContactSendError", "ContactValidationError", "send_contact_message"]
