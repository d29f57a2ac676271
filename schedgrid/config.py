import os

BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


class Config:
    # SQLite database file stored next to the project as schedgrid.db
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "schedgrid.db")
    )

    # Long-press gesture timing (milliseconds)
    MENU_ARM_MS = int(os.getenv("MENU_ARM_MS", "500"))
    MOVE_ARM_MS = int(os.getenv("MOVE_ARM_MS", "1000"))
    CLICK_SUPPRESS_MS = int(os.getenv("CLICK_SUPPRESS_MS", "100"))
    HAPTIC_PULSE_MS = int(os.getenv("HAPTIC_PULSE_MS", "50"))

    # Pointer travel (px) that cancels a pending long-press
    MOVE_CANCEL_PX = float(os.getenv("MOVE_CANCEL_PX", "10"))

    # Grid shape. Fixed: stored spans and row indices depend on these
    MAX_SPAN = 3
    ADDITIONAL_SLOT_OFFSET = 1000
    PRIORITY_SENTINEL = 999999
    DEFAULT_COLUMN_CAPACITY = int(os.getenv("DEFAULT_COLUMN_CAPACITY", "1"))

    # Non-admins may only edit days that ended less than this many hours ago
    NON_ADMIN_EDIT_WINDOW_HOURS = int(os.getenv("NON_ADMIN_EDIT_WINDOW_HOURS", "24"))
