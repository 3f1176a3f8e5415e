def main() -> None:
    """Entry point for the application."""
    from zipship.api.main import main as api_main

    api_main()
