"""Wire and result models for paginated SOQL queries."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class QueryPage(BaseModel):
    """One page of the ``/query`` response."""

    model_config = ConfigDict(populate_by_name=True)

    total_size: int = Field(default=0, alias="totalSize")
    done: bool = False
    next_records_url: Optional[str] = Field(default=None, alias="nextRecordsUrl")
    records: List[Dict[str, Any]] = Field(default_factory=list)


class QueryResult(BaseModel):
    """Accumulated pages of a single query call."""

    total_size: int = 0
    done: bool = False
    next_records_url: str = ""
    records: Any = Field(default_factory=list)


class SObjectRecord(BaseModel):
    """Schemaless record: keeps every column the query selected."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    attributes: Optional[Dict[str, Any]] = None
    id: Optional[str] = Field(default=None, alias="Id")
