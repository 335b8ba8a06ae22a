from . import (
    classes,
    bookings,
    waitlist,
    packages,
    members,
    trainers,
)

__all__ = [
    "classes",
    "bookings",
    "waitlist",
    "packages",
    "members",
    "trainers",
]
