"""
Volunteer Portal — Event Registration & Capacity Core
======================================================
Organizations post volunteer events, volunteers register and cancel, and
organizers review who signed up.  This package holds the registration
workflow (capacity, deadlines, duplicate/reactivation handling, schedule
conflicts) plus the thin directory and HTTP layers around it.

Package layout::

    volunteer_portal/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # User-facing rule messages
    ├── errors.py          # NotFound / Conflict / TransientStore errors
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # users, events, registrations
    │   └── seed.py        # Demo data seeder
    ├── engine/
    │   ├── eligibility.py # Pure registration rules (open? overlap?)
    │   └── views.py       # Registration / event / user snapshots
    ├── services/
    │   ├── directory_service.py    # Event + user directories
    │   ├── locking.py              # Per-event mutex registry
    │   └── registration_service.py # Register / cancel / list
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT verification + DI
        └── routes/        # Registration endpoints
"""

__version__ = "0.1.0"
