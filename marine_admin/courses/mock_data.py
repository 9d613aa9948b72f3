"""
Fallback data used when the marketplace API is unavailable.
Only for local development and graceful degradation, never written back.
"""
from datetime import date, timedelta

MOCK_CATEGORIES = [
    {"id": "cat-safety", "name": "Safety & Survival"},
    {"id": "cat-engineering", "name": "Marine Engineering"},
    {"id": "cat-navigation", "name": "Navigation"},
]

MOCK_COURSES = [
    {
        "id": "course-1",
        "title": "STCW Basic Safety Training",
        "description": "Personal survival, fire prevention, elementary first aid and personal safety for seafarers.",
        "categoryIds": ["cat-safety"],
        "level": "beginner",
        "status": "active",
        "instructor": "Capt. Maria Alvarez",
        "duration": 40,
        "maxParticipants": 24,
        "price": 1150,
        "currency": "USD",
        "featured": True,
        "certificationProvided": True,
        "certificationName": "STCW A-VI/1",
    },
    {
        "id": "course-2",
        "title": "Marine Diesel Engine Maintenance",
        "description": "Hands-on servicing of inboard diesel engines: fuel systems, cooling, and troubleshooting.",
        "categoryIds": ["cat-engineering"],
        "level": "intermediate",
        "status": "active",
        "instructor": "Tom Becker",
        "duration": 24,
        "maxParticipants": 12,
        "price": 890,
        "currency": "USD",
        "featured": False,
        "certificationProvided": True,
        "certificationName": "Diesel Maintenance Certificate",
    },
    {
        "id": "course-3",
        "title": "Radar and ECDIS Navigation",
        "description": "Electronic chart display, radar plotting and collision avoidance for bridge officers.",
        "categoryIds": ["cat-navigation"],
        "level": "advanced",
        "status": "inactive",
        "instructor": "Lt. James Okafor",
        "duration": 32,
        "maxParticipants": 10,
        "price": 1400,
        "currency": "EUR",
        "featured": False,
        "certificationProvided": False,
        "certificationName": "",
    },
]


def _slot(slot_id, start, length_days, days, spots, booked, is_online=False, location="", notes=""):
    return {
        "id": slot_id,
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=length_days)).isoformat(),
        "startTime": "09:00",
        "endTime": "17:00",
        "daysOfWeek": days,
        "isOnline": is_online,
        "location": location,
        "spotsAvailable": spots,
        "spotsBooked": booked,
        "notes": notes,
    }


def mock_availability(course_id: str, today: date = None) -> list[dict]:
    """
    Availability records for a mock course, dated around today so the page shows a mix of
    available, full and expired slots.
    """
    today = today or date.today()
    slots = [
        _slot(f"{course_id}-slot-1", today - timedelta(days=30), 4, ["Monday", "Tuesday", "Wednesday"], 20, 18,
              location="Miami Training Center, Room 101"),
        _slot(f"{course_id}-slot-2", today + timedelta(days=7), 4, ["Monday", "Wednesday", "Friday"], 12, 12,
              location="San Diego Harbor Campus", notes="Bring safety boots."),
        _slot(f"{course_id}-slot-3", today + timedelta(days=21), 11, ["Saturday", "Sunday"], 20, 6, is_online=True),
    ]
    return slots


def get_mock_course(course_id: str):
    return next((course for course in MOCK_COURSES if course["id"] == course_id), None)


def mock_course_stats() -> dict:
    return {
        "total": len(MOCK_COURSES),
        "active": sum(1 for course in MOCK_COURSES if course["status"] == "active"),
        "inactive": sum(1 for course in MOCK_COURSES if course["status"] == "inactive"),
        "featured": sum(1 for course in MOCK_COURSES if course.get("featured")),
    }
