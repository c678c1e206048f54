"""Domain models for the auto-segmentation job supervisor."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname

from autoseg_supervisor.shared.logging import mask_secret, redact_url


@dataclass(frozen=True)
class JobParameters:
    """The seven required parameters of one job. Never mutated."""

    input_location: str
    output_location: str
    series_id: str
    study_id: str
    patient_id: str
    auth_token: str = field(repr=False)
    upload_id: str

    @property
    def redacted_token(self) -> str:
        return mask_secret(self.auth_token)

    def describe(self) -> List[Tuple[str, str]]:
        """Label/value pairs safe to log."""
        return [
            ("Input location", redact_url(self.input_location)),
            ("Output location", redact_url(self.output_location)),
            ("Series identifier", self.series_id),
            ("Study identifier", self.study_id),
            ("Patient identifier", self.patient_id),
            ("Authorization token", self.redacted_token),
            ("File upload identifier", self.upload_id),
        ]


@dataclass(frozen=True)
class WorkerHandle:
    """The supervised background worker process."""

    pid: int
    log_path: Path
    command: Tuple[str, ...]
    started_at: datetime = field(default_factory=datetime.now)
    process: Optional[Any] = field(default=None, repr=False, compare=False)


class WaitStrategy(Enum):
    """How a bounded wait observes its predicate."""

    POLL = "poll"
    EVENT = "event"


@dataclass(frozen=True)
class PhaseWaitSpec:
    """
    Configuration of one bounded wait.

    Polling waits are bounded by ``max_attempts`` (sleeping ``interval``
    between attempts) or by ``timeout``. Event waits subscribe to entries
    appearing in ``watch_dir`` and accept as soon as ``target_name`` shows
    up; ``interval`` is then the polling cadence used if the subscription
    is unavailable.
    """

    description: str
    predicate: Callable[[], bool]
    interval: float
    max_attempts: Optional[int] = None
    timeout: Optional[float] = None
    strategy: WaitStrategy = WaitStrategy.POLL
    watch_dir: Optional[Path] = None
    target_name: Optional[str] = None
    on_miss: Optional[Callable[[int], None]] = None
    diagnostics: Optional[Callable[[], Optional[str]]] = None

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.max_attempts is None and self.timeout is None:
            raise ValueError("either max_attempts or timeout is required")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("timeout cannot be negative")
        if self.strategy is WaitStrategy.EVENT:
            if self.watch_dir is None or not self.target_name:
                raise ValueError("event waits need watch_dir and target_name")
            if self.timeout is None:
                raise ValueError("event waits need a timeout")

    @property
    def budget_seconds(self) -> float:
        if self.timeout is not None:
            return self.timeout
        return self.interval * self.max_attempts


@dataclass(frozen=True)
class PhaseOutcome:
    """Result of a successful bounded wait."""

    phase: str
    attempts: int
    elapsed: float
    strategy: WaitStrategy


@dataclass(frozen=True)
class JobStatusRecord:
    """One row of the worker's status table, as read by the supervisor."""

    series_id: str
    status: Optional[str]
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        extra = ", ".join(f"{k}: {v}" for k, v in self.details.items())
        text = f"Series: {self.series_id}, Status: {self.status}"
        return f"{text}, {extra}" if extra else text


class StatusDiagnosis(Enum):
    """Why a series has not reached the expected status."""

    DATABASE_MISSING = "database-missing"
    TABLE_MISSING = "table-missing"
    EMPTY = "empty"
    UNREGISTERED = "unregistered"
    STUCK = "stuck"
    READY = "ready"


@dataclass
class StatusReport:
    """Snapshot of the status table taken when a database wait fails."""

    series_id: str
    expected_status: str
    database_path: Path
    database_exists: bool = False
    database_size: int = 0
    connectable: bool = False
    table_exists: bool = False
    tables: List[str] = field(default_factory=list)
    total_rows: int = 0
    rows_by_status: Dict[str, int] = field(default_factory=dict)
    series_rows: List[JobStatusRecord] = field(default_factory=list)
    known_series: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def diagnosis(self) -> StatusDiagnosis:
        if not self.database_exists or not self.connectable:
            return StatusDiagnosis.DATABASE_MISSING
        if not self.table_exists:
            return StatusDiagnosis.TABLE_MISSING
        if self.total_rows == 0:
            return StatusDiagnosis.EMPTY
        if not self.series_rows:
            return StatusDiagnosis.UNREGISTERED
        if any(r.status == self.expected_status for r in self.series_rows):
            return StatusDiagnosis.READY
        return StatusDiagnosis.STUCK

    def summary(self) -> str:
        diagnosis = self.diagnosis
        if diagnosis is StatusDiagnosis.DATABASE_MISSING:
            return f"Database {self.database_path} is missing or not readable"
        if diagnosis is StatusDiagnosis.TABLE_MISSING:
            return "Status table does not exist"
        if diagnosis is StatusDiagnosis.EMPTY:
            return "Database is empty: no series registered at all"
        if diagnosis is StatusDiagnosis.UNREGISTERED:
            return f"Series '{self.series_id}' was never registered"
        statuses = ", ".join(sorted({str(r.status) for r in self.series_rows}))
        if diagnosis is StatusDiagnosis.STUCK:
            return (
                f"Series '{self.series_id}' is stuck in status {statuses} "
                f"(expected {self.expected_status})"
            )
        return f"Series '{self.series_id}' has status {self.expected_status}"

    def format(self) -> str:
        lines = [
            f"Diagnosis: {self.diagnosis.value} - {self.summary()}",
            f"Database file: {self.database_path} "
            f"(exists={self.database_exists}, size={self.database_size} bytes)",
            f"Read-only connectivity: {'OK' if self.connectable else 'FAILED'}",
        ]
        if self.connectable:
            lines.append(f"Status table exists: {self.table_exists}")
            if not self.table_exists:
                lines.append(f"Available tables: {', '.join(self.tables) or '(none)'}")
            else:
                lines.append(f"Total rows: {self.total_rows}")
                if self.rows_by_status:
                    lines.append("Rows by status:")
                    for status, count in sorted(self.rows_by_status.items()):
                        lines.append(f"  {status}|{count}")
                if self.series_rows:
                    lines.append(f"Rows for series '{self.series_id}':")
                    lines.extend(f"  {record}" for record in self.series_rows)
                else:
                    lines.append(f"Series '{self.series_id}' not present. Known series:")
                    lines.extend(f"  {name}" for name in self.known_series)
        for error in self.errors:
            lines.append(f"Query error: {error}")
        return "\n".join(lines)


@dataclass(frozen=True)
class Artifact:
    """The worker's final output file."""

    path: Path

    @property
    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def is_publishable(self) -> bool:
        return self.path.is_file() and self.size > 0

    def remote_name(self, upload_id: str) -> str:
        """AUTOSEGMENT.RT.dcm -> AUTOSEGMENT.RT.<upload_id>.dcm"""
        return f"{self.path.stem}.{upload_id}{self.path.suffix}"


SUPPORTED_SCHEMES = ("s3", "file", "http", "https")


@dataclass(frozen=True)
class ObjectLocation:
    """A ``scheme://bucket/key`` object storage address."""

    scheme: str
    bucket: str
    key: str
    uri: str

    @classmethod
    def parse(cls, uri: str) -> "ObjectLocation":
        if not uri:
            raise ValueError("empty location")
        parsed = urlparse(uri)
        scheme = parsed.scheme.lower()

        if not scheme:
            return cls("file", "", str(Path(uri)), uri)
        if scheme not in SUPPORTED_SCHEMES:
            raise ValueError(f"unsupported scheme '{scheme}' in {redact_url(uri)}")
        if scheme == "file":
            return cls("file", parsed.netloc, url2pathname(parsed.path), uri)
        if not parsed.netloc:
            raise ValueError(f"missing bucket or host in {redact_url(uri)}")
        return cls(scheme, parsed.netloc, parsed.path.lstrip("/"), uri)

    @property
    def local_path(self) -> Path:
        if self.scheme != "file":
            raise ValueError(f"{self} is not a local location")
        return Path(self.key)

    def child(self, name: str) -> "ObjectLocation":
        return ObjectLocation.parse(f"{self.uri.rstrip('/')}/{name}")

    def __str__(self) -> str:
        return redact_url(self.uri)


@dataclass(frozen=True)
class AcquisitionResult:
    """Outcome of fetching, extracting and relocating the input archive."""

    archive_path: Path
    archive_size: int
    relocated: Tuple[Path, ...]
    watch_file_count: int


@dataclass(frozen=True)
class PublishResult:
    """Outcome of uploading and verifying the artifact."""

    location: ObjectLocation
    size_bytes: int


@dataclass
class JobResult:
    """Result of one successful job run."""

    publish: PublishResult
    phases: List[PhaseOutcome] = field(default_factory=list)
    metrics: Dict[str, Any] = field(default_factory=dict)
