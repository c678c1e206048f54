"""Parsing and validation of the job's required parameters."""

import re
from typing import Dict, List, Mapping, Optional, Sequence

from autoseg_supervisor.domain.exceptions import InvalidParameter, MissingParameter
from autoseg_supervisor.domain.models import JobParameters, ObjectLocation
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)

# JobParameters field -> key used on the command line and in the environment
REQUIRED_PARAMETERS = {
    "input_location": "inputS3Path",
    "output_location": "outputS3Path",
    "series_id": "seriesInstanceUID",
    "study_id": "studyInstanceUID",
    "patient_id": "patientID",
    "auth_token": "transactionToken",
    "upload_id": "fileUploadId",
}

UPLOAD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def parse_argument_pairs(tokens: Sequence[str]) -> Dict[str, str]:
    """
    Turn ``key value key value ...`` tokens into a mapping.

    Raises:
        InvalidParameter: On an odd number of tokens or an unknown key
    """
    if len(tokens) % 2 != 0:
        raise InvalidParameter(
            f"Arguments must be key/value pairs, got {len(tokens)} tokens"
        )

    known = set(REQUIRED_PARAMETERS.values())
    pairs: Dict[str, str] = {}
    for key, value in zip(tokens[0::2], tokens[1::2]):
        if key not in known:
            raise InvalidParameter(
                f"Unknown parameter '{key}'. Expected one of: {', '.join(REQUIRED_PARAMETERS.values())}"
            )
        pairs[key] = value
    return pairs


class ParameterValidator:
    """Builds the immutable JobParameters from arguments and environment."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ if environ is not None else {}
        self._logger = get_logger(__name__)

    def validate(self, arguments: Optional[Mapping[str, str]] = None) -> JobParameters:
        """
        Resolve every required parameter, arguments taking precedence.

        Args:
            arguments: Key/value pairs from the command line

        Returns:
            Validated JobParameters

        Raises:
            MissingParameter: Naming every absent key at once
            InvalidParameter: If the upload identifier or a location is malformed
        """
        arguments = arguments or {}
        values: Dict[str, str] = {}
        missing: List[str] = []

        for field_name, key in REQUIRED_PARAMETERS.items():
            value = arguments.get(key)
            if not value:
                value = self._environ.get(key)
            if not value:
                missing.append(key)
                continue
            values[field_name] = value

        if missing:
            raise MissingParameter(missing)

        if not UPLOAD_ID_PATTERN.fullmatch(values["upload_id"]):
            raise InvalidParameter(
                f"Invalid fileUploadId {values['upload_id']!r}: "
                "only letters, digits, '_' and '-' are allowed"
            )

        for field_name in ("input_location", "output_location"):
            try:
                ObjectLocation.parse(values[field_name])
            except ValueError as e:
                raise InvalidParameter(
                    f"Invalid {REQUIRED_PARAMETERS[field_name]}: {e}"
                ) from e

        params = JobParameters(**values)
        self.log_parameters(params)
        return params

    def log_parameters(self, params: JobParameters) -> None:
        self._logger.info("Job parameters:")
        for label, value in params.describe():
            self._logger.info(f"  {label}: {value}")
