from .user import User, UserRole
from .member import Member
from .trainer import Trainer
from .gym_class import GymClass
from .class_schedule import ClassSchedule
from .booking import ClassBooking, BookingStatus
from .waitlist import ClassWaitlist, WaitlistStatus, ACTIVE_WAITLIST_STATUSES
from .class_package import ClassPackage, ClassPassType
from .class_pass import MemberClassPass, PassStatus
from .credit_transaction import ClassCreditTransaction, CreditTransactionType
from .favorite import ClassFavorite
from .rating import InstructorRating
from .notification import Notification, NotificationType
from .setting import Setting
