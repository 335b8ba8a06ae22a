from .gym_class import ClassCreate, ClassUpdate, ClassFilters, ClassSchedule, PaginatedClasses
from .booking import Booking, BookingCreate, BookingStatusUpdate
from .waitlist import WaitlistEntry, WaitlistJoin
from .credits import (
    ActivePass,
    ClassPackage,
    ClassPackageCreate,
    MemberCredits,
    PackagePurchase,
    PurchaseResult,
)
from .engagement import (
    ClassFavorite,
    ClassHistory,
    InstructorProfile,
    InstructorRating,
    InstructorRatingCreate,
)
