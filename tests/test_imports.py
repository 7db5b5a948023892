"""Verify all modules can be imported without errors."""


def test_core_module_imports():
    """Import core modules to catch bad import paths."""
    import workout_tracker_api.main
    import workout_tracker_api.models
    import workout_tracker_api.config
    import workout_tracker_api.errors
    import workout_tracker_api.utils
    import workout_tracker_api.auth
    import workout_tracker_api.retry
    import workout_tracker_api.container


def test_api_imports():
    """Import API route modules."""
    import workout_tracker_api.api.routes
    import workout_tracker_api.api.counter_routes


def test_service_imports():
    """Import service modules."""
    import workout_tracker_api.services.observable
    import workout_tracker_api.services.flows
    import workout_tracker_api.services.colors
    import workout_tracker_api.services.identity
    import workout_tracker_api.services.counter_service
    import workout_tracker_api.services.history_resolver
    import workout_tracker_api.services.session_manager
    import workout_tracker_api.services.routine_service
    import workout_tracker_api.services.rest_timer
    import workout_tracker_api.services.workout_engine


def test_repository_imports():
    """Import store ports and implementations."""
    import workout_tracker_api.repositories
    import workout_tracker_api.repositories.ports
    import workout_tracker_api.repositories.memory
    import workout_tracker_api.repositories.supabase_store


def test_app_starts():
    """Verify FastAPI app can be instantiated."""
    from workout_tracker_api.main import app
    assert app is not None
    assert hasattr(app, 'routes')
