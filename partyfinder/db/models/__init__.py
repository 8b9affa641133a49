"""Database models package."""
from partyfinder.db.models.user import User
from partyfinder.db.models.event import Event
from partyfinder.db.models.checkin import CheckIn
from partyfinder.db.models.friendship import Friendship
from partyfinder.db.models.media import EventMedia

__all__ = ["User", "Event", "CheckIn", "Friendship", "EventMedia"]
