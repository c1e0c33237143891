import json
from dataclasses import dataclass, field

STATUS_SUCCESS = "SUCCESS"
STATUS_FAILED = "FAILED"


@dataclass
class ToolResult:
    success: bool
    data: dict = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, **data) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_code: str | None = None) -> "ToolResult":
        return cls(success=False, error=error, error_code=error_code)

    @property
    def status(self) -> str:
        return STATUS_SUCCESS if self.success else STATUS_FAILED

    def to_envelope(self) -> dict:
        data = dict(self.data)
        if not self.success:
            data["error"] = self.error or "unknown error"
            if self.error_code:
                data["code"] = self.error_code
        return {"status": self.status, "data": data}

    def to_content(self) -> str:
        try:
            return json.dumps(self.to_envelope(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            return json.dumps(
                {
                    "status": STATUS_FAILED,
                    "data": {"error": f"error encoding tool response: {e}"},
                }
            )


class ErrorCode:
    VALIDATION_ERROR = "validation_error"
    TIMEOUT = "timeout"
    TOOL_EXCEPTION = "tool_exception"
    LLM_PROTOCOL_ERROR = "llm_protocol_error"
    TRANSPORT_ERROR = "transport_error"
    TURN_EXHAUSTED = "turn_exhausted"
