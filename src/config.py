"""Configuration settings for the labor service."""

import os


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    host = os.environ.get("DB_HOST", "localhost")
    port = 5433 if host == "localhost" else 5432
    password = os.environ.get("DB_PASSWORD", "labor_pass")
    user = os.environ.get("DB_USER", "labor_user")
    db_name = os.environ.get("DB_NAME", "labor_db")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_minio_config():
    """Get MinIO connection configuration from environment variables."""
    host = os.environ.get("MINIO_HOST", "localhost")
    endpoint = f"{host}:9000"
    access_key = os.environ.get("MINIO_ACCESS_KEY", "minioadmin")
    secret_key = os.environ.get("MINIO_SECRET_KEY", "minioadmin123")
    bucket_name = os.environ.get("MINIO_BUCKET", "labor-files")
    secure = os.environ.get("MINIO_SECURE", "false").lower() == "true"

    return dict(
        endpoint=endpoint,
        access_key=access_key,
        secret_key=secret_key,
        bucket_name=bucket_name,
        secure=secure
    )


def get_mail_config():
    """Get SMTP settings for the notification mails."""
    host = os.environ.get("MAIL_HOST", "localhost")
    port = int(os.environ.get("MAIL_PORT", "25"))
    return dict(
        host=host,
        port=port,
        username=os.environ.get("MAIL_USERNAME"),
        password=os.environ.get("MAIL_PASSWORD"),
        use_tls=os.environ.get("MAIL_USE_TLS", "false").lower() == "true",
        sender=os.environ.get("MAIL_FROM", "theo@test.de"),
        recipient=os.environ.get("MAIL_SALES", "max@test.de"),
        timeout=float(os.environ.get("MAIL_TIMEOUT", "10")),
    )


def get_timeouts():
    """
    Get the timeout budgets in seconds.

    short: single-document operations (lookup by id, insert, save, delete)
    long: multi-document scans
    """
    short = float(os.environ.get("LABOR_TIMEOUT_SHORT", "0.5"))
    long = float(os.environ.get("LABOR_TIMEOUT_LONG", "2.0"))
    return dict(short=short, long=max(short, long))
