"""Configuration settings for the custody ledger service."""

import os


DEFAULT_IDENTITIES = "CiplaMSP=Cipla,MedlifeMSP=Medlife,ApolloMSP=Apollo,CDSCOMSP=CDSCO"


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", 5433 if host == "localhost" else 5432)
    password = os.environ.get("DB_PASSWORD", "custody_pass")
    user = os.environ.get("DB_USER", "custody_user")
    db_name = os.environ.get("DB_NAME", "custody_db")
    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}"


def get_redis_host_and_port():
    """Get Redis connection details from environment variables."""
    host = os.environ.get("REDIS_HOST", "localhost")
    port = int(os.environ.get("REDIS_PORT", 6379))
    return dict(host=host, port=port)


def get_api_url():
    """Get API URL from environment variables."""
    host = os.environ.get("API_HOST", "localhost")
    port = os.environ.get("API_PORT", 8000)
    return f"http://{host}:{port}"


def get_custody_roles():
    """Get the well-known organisational roles of the supply chain."""
    return dict(
        manufacturer=os.environ.get("MANUFACTURER_ROLE", "Cipla"),
        regulator=os.environ.get("REGULATOR_ROLE", "CDSCO"),
    )


def get_identity_mapping():
    """
    Get the credential -> role table.

    Format of CUSTODY_IDENTITIES: comma separated ``credential=role`` pairs,
    e.g. ``CiplaMSP=Cipla,CDSCOMSP=CDSCO``.
    """
    raw = os.environ.get("CUSTODY_IDENTITIES", DEFAULT_IDENTITIES)
    mapping = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        credential, sep, role = pair.partition("=")
        if not sep or not credential.strip() or not role.strip():
            raise ValueError(f"Invalid CUSTODY_IDENTITIES entry: {pair!r}")
        mapping[credential.strip()] = role.strip()
    return mapping


def get_log_level():
    return os.environ.get("LOG_LEVEL", "INFO").upper()
