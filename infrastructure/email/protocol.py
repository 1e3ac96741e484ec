"""EmailProvider protocol — services depend on this, not the concrete implementation.

Both methods return False (or raise) when the message could not be handed to
the mail service; callers roll back whatever the email was announcing.
"""

from typing import Protocol


class EmailProvider(Protocol):
    async def send_verification_email(self, email: str, slug: str) -> bool: ...

    async def send_password_reset_email(self, email: str, slug: str) -> bool: ...
