"""UTC timezone enforcement.

Event expiry and ledger timestamps are compared in UTC, so the process
timezone is pinned before anything else is imported.
"""

import os

os.environ["TZ"] = "UTC"
