"""
FastAPI Todo backend with an append-only change event trail.

The application instance lives in `todo_service.main` (`app`, or `create_app()`
for a freshly wired instance).
"""
