"""
Nexus PM - Generation API
=========================

Voice transcription, text refinement and brief-to-project planning.
"""

from fastapi import APIRouter, status

from nexus.api.deps import CurrentUser, GeneratorDep, WorkspaceDep
from nexus.core.schemas import BriefRequest, Project, TextResponse, TranscribeRequest

router = APIRouter(prefix="/generation", tags=["Generation"])


@router.post("/transcribe", response_model=TextResponse)
async def transcribe(
    data: TranscribeRequest,
    current_user: CurrentUser,
    generator: GeneratorDep,
) -> TextResponse:
    """Transcribe base64 audio in the requested language."""
    text = await generator.transcribe(data.audio_base64, data.language, data.mime_type)
    return TextResponse(text=text)


@router.post("/refine", response_model=TextResponse)
async def refine(data: BriefRequest, current_user: CurrentUser, generator: GeneratorDep) -> TextResponse:
    """Grammar and clarity pass; returns the input unchanged if the model fails."""
    return TextResponse(text=await generator.refine_text(data.text))


@router.post("/plan", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project_from_brief(
    data: BriefRequest,
    current_user: CurrentUser,
    workspace: WorkspaceDep,
    generator: GeneratorDep,
) -> Project:
    """
    Turn a free-text brief into a new project.

    Tasks are created Pending, attributed to "AI Agent", and assigned only
    to ids that exist in the current roster.
    """
    return await workspace.create_project_from_brief(data.text, generator)
