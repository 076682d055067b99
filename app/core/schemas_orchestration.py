"""Pydantic schemas for edit orchestration requests and results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.core.schemas_critique import CritiqueAnalysis
from app.core.schemas_document import DocumentPreferences
from app.core.schemas_style import AudienceOverlay, StyleProfile


class RequestMode(str, Enum):
    EDIT = "edit"
    GENERATION = "generation"


class DocumentSection(BaseModel):
    id: str
    name: str
    type: str
    start_paragraph: int
    end_paragraph: int
    purpose: str = ""


class DocumentStructure(BaseModel):
    """Optional structural metadata about the document being edited."""

    title: str = ""
    document_type: str = ""
    sections: list[DocumentSection] = Field(default_factory=list)
    key_terms: list[str] = Field(default_factory=list)
    main_argument: str = ""

    def section_for(self, paragraph_index: int) -> DocumentSection | None:
        for section in self.sections:
            if section.start_paragraph <= paragraph_index <= section.end_paragraph:
                return section
        return None


class OrchestrationRequest(BaseModel):
    """One edit request: the whole document plus a target paragraph."""

    paragraphs: list[str]
    paragraph_index: int
    document_id: str
    instruction: str | None = None
    document_structure: DocumentStructure | None = None
    style: StyleProfile = Field(default_factory=StyleProfile)
    audience: AudienceOverlay | None = None
    model: str | None = None


class ConvergenceEntry(BaseModel):
    """One attempt of the generate/critique loop."""

    model_config = ConfigDict(frozen=True)

    attempt: int
    alignment_score: float
    adjustments_made: list[str] = Field(default_factory=list)


class OrchestrationResult(BaseModel):
    edited_text: str
    original_text: str
    paragraph_index: int
    critique: CritiqueAnalysis
    iterations: int
    convergence_history: list[ConvergenceEntry] = Field(default_factory=list)
    document_preferences: DocumentPreferences
    mode: RequestMode = RequestMode.EDIT
