"""SQLAlchemy models for StayHub.

All models are imported here so that ``Base.metadata`` sees every table
(``create_all`` in tests and the seed script rely on it). If you add a new
model, import it in this file.
"""

from stayhub.models.conversation import Conversation, ConversationParticipant, Message
from stayhub.models.favorite import Favorite
from stayhub.models.profile import UserProfile
from stayhub.models.property import Property
from stayhub.models.reference import Category, Experience
from stayhub.models.user import User

__all__ = [
    "Category",
    "Conversation",
    "ConversationParticipant",
    "Experience",
    "Favorite",
    "Message",
    "Property",
    "User",
    "UserProfile",
]
