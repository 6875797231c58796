from __future__ import annotations

import snowflake.connector

from grant_review.config import get_settings


# MODULE-LEVEL CONNECTION (USED BY REPOSITORIES)


def get_snowflake_connection():
    """
    Snowflake connection factory.
    Used by repositories; one connection per unit of work.
    """
    settings = get_settings()

    params = dict(
        account=settings.SNOWFLAKE_ACCOUNT,
        user=settings.SNOWFLAKE_USER,
        password=settings.SNOWFLAKE_PASSWORD.get_secret_value(),
        warehouse=settings.SNOWFLAKE_WAREHOUSE,
        database=settings.SNOWFLAKE_DATABASE,
        schema=settings.SNOWFLAKE_SCHEMA,
    )
    if settings.SNOWFLAKE_ROLE:
        params["role"] = settings.SNOWFLAKE_ROLE

    return snowflake.connector.connect(**params)
