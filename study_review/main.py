from study_review.app import AppSettings, prepare_database

__all__ = ["main"]


def main() -> None:
    """Entry point: prepare the database schema for the host application."""
    settings = AppSettings.from_env()
    prepare_database(settings)


if __name__ == "__main__":
    main()
