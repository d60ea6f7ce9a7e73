from triptrack.models.user import Account, User, UserRole
from triptrack.models.trip import Trip, TripMember
from triptrack.models.savings_log import SavingsLog
from triptrack.models.share_link import TripShareLink

__all__ = ["Account", "User", "UserRole", "Trip", "TripMember", "SavingsLog", "TripShareLink"]
