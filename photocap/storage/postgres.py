from __future__ import annotations

import uuid
from dataclasses import fields as dataclass_fields
from typing import Any, Dict, List, Optional, Tuple

from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from photocap.logging import get_logger
from photocap.storage.errors import ConstraintViolation
from photocap.storage.models import (
    EVENT_MUTABLE_FIELDS,
    IDENTITY_MODELS,
    IMMUTABLE_IDENTITY_FIELDS,
    Client,
    Event,
    EventStatus,
    Identity,
    TenantClass,
)

_IDENTITY_TABLES = {
    TenantClass.ADMIN: "admin_identity",
    TenantClass.STUDIO: "studio_user",
}

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS admin_identity (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'SUPER_ADMIN',
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS studio_user (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        phone TEXT,
        date_of_birth DATE,
        photography_type TEXT,
        event_types TEXT[] NOT NULL DEFAULT '{}',
        budget TEXT,
        preferred_date DATE,
        subscribe_newsletter BOOLEAN NOT NULL DEFAULT FALSE,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        email_verified BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS identity_credential (
        tenant TEXT NOT NULL,
        identity_id TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        last_updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        PRIMARY KEY (tenant, identity_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS studio_client (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES studio_user(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        phone TEXT,
        total_events INTEGER NOT NULL DEFAULT 0,
        total_spent NUMERIC(12, 2) NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        UNIQUE (user_id, email)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS studio_event (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES studio_user(id) ON DELETE CASCADE,
        client_id TEXT NOT NULL REFERENCES studio_client(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        event_type TEXT NOT NULL,
        event_date TIMESTAMPTZ NOT NULL,
        event_location TEXT,
        duration INTEGER,
        budget TEXT NOT NULL,
        client_name TEXT NOT NULL,
        client_email TEXT NOT NULL,
        client_phone TEXT,
        status TEXT NOT NULL DEFAULT 'PLANNING',
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _columns(model) -> List[str]:
    return [f.name for f in dataclass_fields(model)]


def _row_to_model(model, row: Dict[str, Any]):
    return model(**{name: row[name] for name in _columns(model) if name in row})


def _row_to_event(row: Dict[str, Any]) -> Event:
    event = _row_to_model(Event, row)
    event.status = EventStatus(event.status)
    return event


def _row_to_client(row: Dict[str, Any]) -> Client:
    client = _row_to_model(Client, row)
    client.total_spent = float(client.total_spent)
    return client


class PostgresStore:
    """Postgres-backed credential and booking store.

    Identity reads select an explicit column list built from the profile
    models, so the credential hash never leaves ``identity_credential`` except
    through :meth:`get_password_hash`.
    """

    def __init__(self, dsn: str, *, min_size: int = 1, max_size: int = 10) -> None:
        self.dsn = dsn
        self.logger = get_logger(__name__)
        self.pool = ConnectionPool(
            self.dsn,
            min_size=min_size,
            max_size=max_size,
            kwargs={"row_factory": dict_row, "autocommit": False},
        )
        self._ensure_schema()

    def _connect(self):
        return self.pool.connection()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        self.logger.info("postgres_schema_ready")

    @staticmethod
    def _identity_projection(tenant: TenantClass) -> Tuple[str, str]:
        tenant = TenantClass(tenant)
        return _IDENTITY_TABLES[tenant], ", ".join(_columns(IDENTITY_MODELS[tenant]))

    # identities
    def create_identity(
        self, tenant: TenantClass, email: str, password_hash: str, **fields
    ) -> Identity:
        tenant = TenantClass(tenant)
        model = IDENTITY_MODELS[tenant]
        table, projection = self._identity_projection(tenant)
        values = {"id": str(uuid.uuid4()), "email": _normalize_email(email), **fields}
        unknown = set(values) - set(_columns(model))
        if unknown:
            raise ValueError(f"unknown identity fields: {', '.join(sorted(unknown))}")
        names = list(values)
        placeholders = ", ".join(["%s"] * len(names))
        try:
            with self._connect() as conn, conn.transaction():
                row = conn.execute(
                    f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders}) RETURNING {projection}",
                    tuple(values[name] for name in names),
                ).fetchone()
                conn.execute(
                    "INSERT INTO identity_credential (tenant, identity_id, password_hash) VALUES (%s, %s, %s)",
                    (tenant.value, values["id"], password_hash),
                )
        except errors.UniqueViolation:
            raise ConstraintViolation(
                "email already exists", field="email", detail={"tenant": tenant.value}
            )
        return _row_to_model(model, row)

    def get_identity_by_email(self, tenant: TenantClass, email: str) -> Optional[Identity]:
        table, projection = self._identity_projection(tenant)
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {projection} FROM {table} WHERE email = %s",
                (_normalize_email(email),),
            ).fetchone()
        if not row:
            return None
        return _row_to_model(IDENTITY_MODELS[TenantClass(tenant)], row)

    def get_identity(self, tenant: TenantClass, identity_id: str) -> Optional[Identity]:
        table, projection = self._identity_projection(tenant)
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {projection} FROM {table} WHERE id = %s", (identity_id,)
            ).fetchone()
        if not row:
            return None
        return _row_to_model(IDENTITY_MODELS[TenantClass(tenant)], row)

    def update_identity(
        self, tenant: TenantClass, identity_id: str, **fields
    ) -> Optional[Identity]:
        forbidden = IMMUTABLE_IDENTITY_FIELDS.intersection(fields)
        if forbidden:
            raise ValueError(f"cannot update {', '.join(sorted(forbidden))} via update_identity")
        model = IDENTITY_MODELS[TenantClass(tenant)]
        unknown = set(fields) - set(_columns(model))
        if unknown:
            raise ValueError(f"unknown identity fields: {', '.join(sorted(unknown))}")
        if not fields:
            return self.get_identity(tenant, identity_id)
        table, projection = self._identity_projection(tenant)
        assignments = ", ".join(f"{name} = %s" for name in fields)
        with self._connect() as conn:
            row = conn.execute(
                f"UPDATE {table} SET {assignments}, updated_at = now() WHERE id = %s RETURNING {projection}",
                (*fields.values(), identity_id),
            ).fetchone()
        if not row:
            return None
        return _row_to_model(model, row)

    def get_password_hash(self, tenant: TenantClass, identity_id: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT password_hash FROM identity_credential WHERE tenant = %s AND identity_id = %s",
                (TenantClass(tenant).value, identity_id),
            ).fetchone()
        if not row:
            return None
        return str(row["password_hash"])

    def save_password(self, tenant: TenantClass, identity_id: str, password_hash: str) -> None:
        with self._connect() as conn:
            updated = conn.execute(
                """
                UPDATE identity_credential
                SET password_hash = %s, last_updated_at = now()
                WHERE tenant = %s AND identity_id = %s
                """,
                (password_hash, TenantClass(tenant).value, identity_id),
            )
            if updated.rowcount == 0:
                raise ConstraintViolation(
                    "identity not found for credentials", detail={"id": identity_id}
                )

    # bookings
    def create_event(
        self,
        user_id: str,
        *,
        client_name: str,
        client_email: str,
        client_phone: Optional[str] = None,
        **fields,
    ) -> Event:
        normalized = _normalize_email(client_email)
        if "status" in fields:
            fields["status"] = EventStatus(fields["status"]).value
        with self._connect() as conn, conn.transaction():
            client_row = conn.execute(
                """
                INSERT INTO studio_client (id, user_id, name, email, phone, total_events)
                VALUES (%s, %s, %s, %s, %s, 1)
                ON CONFLICT (user_id, email) DO UPDATE
                SET name = EXCLUDED.name,
                    phone = COALESCE(EXCLUDED.phone, studio_client.phone),
                    total_events = studio_client.total_events + 1,
                    updated_at = now()
                RETURNING id
                """,
                (str(uuid.uuid4()), user_id, client_name, normalized, client_phone),
            ).fetchone()
            values = {
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "client_id": client_row["id"],
                "client_name": client_name,
                "client_email": normalized,
                "client_phone": client_phone,
                **fields,
            }
            names = list(values)
            row = conn.execute(
                f"INSERT INTO studio_event ({', '.join(names)}) VALUES ({', '.join(['%s'] * len(names))}) RETURNING *",
                tuple(values[name] for name in names),
            ).fetchone()
        return _row_to_event(row)

    def get_event(self, user_id: str, event_id: str) -> Optional[Event]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM studio_event WHERE id = %s AND user_id = %s",
                (event_id, user_id),
            ).fetchone()
        return _row_to_event(row) if row else None

    def list_events(self, user_id: str) -> List[Event]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM studio_event WHERE user_id = %s ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [_row_to_event(row) for row in rows]

    def update_event(self, user_id: str, event_id: str, **fields) -> Optional[Event]:
        unknown = set(fields) - EVENT_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update {', '.join(sorted(unknown))} via update_event")
        if not fields:
            return self.get_event(user_id, event_id)
        if "status" in fields:
            fields["status"] = EventStatus(fields["status"]).value
        assignments = ", ".join(f"{name} = %s" for name in fields)
        with self._connect() as conn:
            row = conn.execute(
                f"UPDATE studio_event SET {assignments}, updated_at = now() WHERE id = %s AND user_id = %s RETURNING *",
                (*fields.values(), event_id, user_id),
            ).fetchone()
        return _row_to_event(row) if row else None

    def delete_event(self, user_id: str, event_id: str) -> bool:
        with self._connect() as conn, conn.transaction():
            row = conn.execute(
                "DELETE FROM studio_event WHERE id = %s AND user_id = %s RETURNING client_id",
                (event_id, user_id),
            ).fetchone()
            if not row:
                return False
            conn.execute(
                """
                UPDATE studio_client
                SET total_events = total_events - 1, updated_at = now()
                WHERE id = %s AND total_events > 0
                """,
                (row["client_id"],),
            )
        return True

    def get_client(self, user_id: str, client_id: str) -> Optional[Client]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM studio_client WHERE id = %s AND user_id = %s",
                (client_id, user_id),
            ).fetchone()
        return _row_to_client(row) if row else None

    def list_clients(
        self, user_id: str, *, recent_events: int = 5
    ) -> List[Tuple[Client, List[Event]]]:
        with self._connect() as conn:
            client_rows = conn.execute(
                "SELECT * FROM studio_client WHERE user_id = %s ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
            event_rows = conn.execute(
                """
                SELECT * FROM (
                    SELECT e.*, row_number() OVER (
                        PARTITION BY e.client_id ORDER BY e.event_date DESC
                    ) AS recent_rank
                    FROM studio_event e
                    WHERE e.user_id = %s
                ) ranked
                WHERE recent_rank <= %s
                ORDER BY event_date DESC
                """,
                (user_id, recent_events),
            ).fetchall()
        by_client: Dict[str, List[Event]] = {}
        for row in event_rows:
            by_client.setdefault(row["client_id"], []).append(_row_to_event(row))
        return [
            (_row_to_client(row), by_client.get(row["id"], [])) for row in client_rows
        ]

    # lifecycle
    def verify_connection(self) -> bool:
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1").fetchone()
        except Exception as exc:
            self.logger.error("postgres_connection_failed", error=str(exc))
            return False
        return True

    def close(self) -> None:
        self.pool.close()
