# sandboxfs_server/tools/files.py
from typing import Annotated, Any, Dict, List, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.json_schema import SkipJsonSchema
from fastmcp import FastMCP
from fastmcp.tools import Tool, ToolResult

REL_PATH = "Path relative to the workspace root"


class ToolInput(BaseModel):
    # unknown fields are rejected; scalar fields are strict, never coerced
    model_config = ConfigDict(extra="forbid")


class ListDirIn(ToolInput):
    path: str = Field(".", strict=True, description="Directory relative to the workspace root ('.' for the root)")


class ReadFileIn(ToolInput):
    path: str = Field(..., min_length=1, strict=True, description=REL_PATH)


class WriteFileIn(ToolInput):
    path: str = Field(..., min_length=1, strict=True, description=REL_PATH)
    content: str = Field(..., strict=True, description="UTF-8 text content to write")
    mode: Literal["overwrite", "append"] = Field("overwrite", description="Overwrite or append")
    createParents: bool = Field(True, strict=True, description="Create missing parent directories")


class TextEdit(ToolInput):
    oldText: str = Field(..., min_length=1, strict=True, description="Exact text to find")
    newText: str = Field(..., strict=True, description="Replacement text")
    replaceAll: bool = Field(False, strict=True, description="Replace every occurrence, not just the first")


class EditFileIn(ToolInput):
    path: str = Field(..., min_length=1, strict=True, description=REL_PATH)
    edits: List[TextEdit] = Field(..., min_length=1, description="Edits applied in order")


class MakeDirectoryIn(ToolInput):
    path: str = Field(..., min_length=1, strict=True, description=REL_PATH)
    parents: bool = Field(True, strict=True, description="Create missing parent directories")


class DeleteFileIn(ToolInput):
    path: str = Field(..., min_length=1, strict=True, description=REL_PATH)
    confirm: bool = Field(False, strict=True, description="Must be true to delete")


class SpecTool(Tool):
    """
    Very thin tool adapter:
    - arguments reach the ToolSpec untouched; it validates them (Pydantic)
    - failures come back as structured results flagged with isError
    """

    spec: Annotated[SkipJsonSchema[Any], Field(exclude=True)] = None

    @classmethod
    def from_spec(cls, spec) -> "SpecTool":
        return cls(
            name=spec.name,
            description=spec.description,
            parameters=spec.input_model.model_json_schema(),
            spec=spec,
        )

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        result = self.spec.invoke(arguments)
        return ToolResult(structured_content=result, is_error=not result["success"])


def register_file_tools(mcp: FastMCP, registry) -> None:
    for spec in registry.values():
        mcp.add_tool(SpecTool.from_spec(spec))
