"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_AUDIT_PAGE_SIZE = 20
MAX_AUDIT_PAGE_SIZE = 200
DEFAULT_RECENT_AUDIT_LIMIT = 100
MIN_PASSWORD_LENGTH = 6
DEFAULT_CONTRACT_CURRENCY = "HUF"
DEFAULT_WORKING_HOURS_PER_WEEK = 40

SYSTEM_USER_EMAIL = "System"
SYSTEM_USER_ROLE = "SYSTEM"
UNKNOWN_IP_ADDRESS = "Unknown"

# Entity type labels written to the audit trail.
ENTITY_USER = "User"
ENTITY_EMPLOYEE = "Employee"
ENTITY_ACCOMMODATION = "Accommodation"
ENTITY_ROOM = "Room"
ENTITY_ROOM_ALLOCATION = "RoomAllocation"
ENTITY_ADVANCE_REQUEST = "AdvanceRequest"
ENTITY_CONTRACT = "Contract"
