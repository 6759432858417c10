"""Error taxonomy shared by services and the HTTP layer.

Services raise these; ``opsdesk.main`` turns them into JSON responses with the
class's ``status_code`` and ``code``.
"""


class OpsError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class NotAuthenticated(OpsError):
    """You must be signed in to do that."""
    status_code = 401
    code = "not_authenticated"


class PermissionDenied(OpsError):
    """Your role does not allow this action."""
    status_code = 403
    code = "permission_denied"


class RecordNotFound(OpsError):
    """Record not found."""
    status_code = 404
    code = "not_found"

    def __init__(self, table: str, record_id):
        self.table = table
        self.record_id = record_id
        super().__init__(f"{table} #{record_id} not found")


class SchemaNotProvisioned(OpsError):
    """The database has not been set up yet."""
    status_code = 503
    code = "schema_not_provisioned"

    def __init__(self, table: str | None = None):
        self.table = table
        what = f"table '{table}'" if table else "a required table"
        super().__init__(f"The database is missing {what}.")

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["setup"] = "Run the database setup (python -m opsdesk.seed or start the API with AUTO_CREATE_TABLES=true)."
        return out


class ValidationFailed(OpsError):
    """The submitted data is not valid."""
    status_code = 422
    code = "validation_failed"


class InvalidTransition(OpsError):
    """That status change is not allowed from the record's current stage."""
    status_code = 409
    code = "invalid_transition"


class AdvanceInFlight(OpsError):
    """A status change for this record is already in progress."""
    status_code = 409
    code = "advance_in_flight"


class DataIntegrityError(OpsError):
    """The record's status and timestamps disagree."""
    status_code = 409
    code = "data_integrity"


class DuplicateRecord(OpsError):
    """A record with the same unique value already exists."""
    status_code = 409
    code = "duplicate"


class RecordStoreError(OpsError):
    """The database write failed. Nothing was changed."""
    status_code = 502
    code = "store_write_failed"
