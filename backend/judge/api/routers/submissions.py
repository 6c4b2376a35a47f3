from fastapi import APIRouter, Depends
from judge.api.deps import get_grader, get_queue
from judge.schemas.enums import SessionKind
from judge.schemas.submission import GradeRequest, SubmissionResult
from judge.services.grader import Grader
from judge.services.sessions import create_session

router = APIRouter(prefix="/submissions", tags=["submissions"])


@router.post("/grade", response_model=SubmissionResult)
async def grade_submission(payload: GradeRequest, grader: Grader = Depends(get_grader)):
    # never raises for user code; malformed submissions come back as RuntimeError
    return await grader.grade(payload.code, payload.language, payload.test_cases, payload.options)


@router.post("/batch", status_code=202)
async def submit_batch(payload: GradeRequest, r=Depends(get_queue)):
    session_id = await create_session(
        r,
        SessionKind.grade,
        payload.language.strip().lower(),
        {
            "code": payload.code,
            "language": payload.language,
            "test_cases": payload.test_cases,
            "options": payload.options.model_dump() if payload.options else None,
        },
    )
    return {"session_id": session_id}
