"""Error taxonomy for extraction pipeline runs."""


class PipelineError(Exception):
    """Base class for failures that end a pipeline run."""


class RunAlreadyInProgress(PipelineError):
    """Raised when a project already has a non-terminal pipeline run."""

    def __init__(self, project_id: str, status: str | None = None):
        self.project_id = str(project_id)
        self.status = status
        detail = f" (status: {status})" if status else ""
        super().__init__(
            f"Pipeline is already running{detail}. "
            "Please wait for it to complete or cancel it first."
        )


class NoSourcesFound(PipelineError):
    """Raised when a project has no sources to extract from."""

    def __init__(self, project_id: str):
        self.project_id = str(project_id)
        super().__init__("No sources found. Upload communication data first.")


class GenerationServiceError(PipelineError):
    """Raised when the text-generation provider fails or is not configured."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.provider_message = message
        super().__init__(f"{provider} error: {message}")


class ResponseParseError(PipelineError):
    """Raised when a generation response cannot be read as JSON."""

    PREVIEW_CHARS = 200

    def __init__(self, raw_output: str):
        self.preview = (raw_output or "")[: self.PREVIEW_CHARS]
        super().__init__(f"Failed to parse AI response as JSON: {self.preview}")
