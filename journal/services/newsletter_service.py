import asyncio
from typing import List

from journal.services.firebase_service import FirebaseService, firebase_service

SUBSCRIBERS = "newsletter_subscribers"


class NewsletterService:
    def __init__(self, firebase: FirebaseService):
        self._firebase = firebase

    async def verified_emails(self) -> List[str]:
        """Emails of subscribers who confirmed their address, deduplicated."""
        query = self._firebase.db.collection(SUBSCRIBERS).where("isVerified", "==", True)

        def _collect():
            emails = []
            for doc in query.stream():
                email = (doc.to_dict() or {}).get("email")
                if email and email not in emails:
                    emails.append(email)
            return emails

        return await asyncio.to_thread(_collect)


newsletter_service = NewsletterService(firebase_service)
