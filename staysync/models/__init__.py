from .user import User, UserRole
from .hotel import Hotel
from .room import Room, RoomStatus
from .booking import Booking, BookingStatus
