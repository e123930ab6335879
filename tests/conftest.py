import os

# Point the module-level engine at a throwaway in-memory database before the
# web package is imported; each test builds its own SQLite file on top.
os.environ.setdefault("MISSIONQUEST_DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("PARENT_PIN", "1234")
