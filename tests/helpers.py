"""Shared test helpers"""
from orchestration.models import ToolCategory, ToolDescriptor


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_descriptor(tool_id: str, **kwargs) -> ToolDescriptor:
    kwargs.setdefault("name", tool_id.replace("_", " ").title())
    kwargs.setdefault("category", ToolCategory.DATA)
    return ToolDescriptor(id=tool_id, **kwargs)


ZIP_SCHEMA = {
    "type": "object",
    "properties": {
        "zip_code": {"type": "string", "pattern": "^[0-9]{5}$"},
        "year": {"type": "integer"},
    },
    "required": ["zip_code"],
}
