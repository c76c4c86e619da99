from .intake import (  # noqa: F401
    AnalysisReady,
    AnalysisServiceClient,
    EmergencyRedirect,
    IntakeGate,
    IntakeValidationError,
    SubmissionFailed,
    SubmissionInProgress,
)
