from fastapi import APIRouter, Depends, HTTPException
from judge.api.deps import get_chain, get_queue
from judge.core.errors import SimulationError, SubmissionValidationError
from judge.schemas.enums import LANGUAGE_ALIASES, Language, SessionKind, parse_language
from judge.schemas.execution import ExecutionResult
from judge.schemas.session import RunCreate, RunOut, SessionOut
from judge.services.chain import ExecutionChain
from judge.services.grader import ComparisonOptions, classify_run, normalize_output
from judge.services.sessions import create_session, get_session

router = APIRouter(prefix="/runs", tags=["runs"])


@router.get("/languages")
async def list_languages():
    aliases: dict[str, list[str]] = {lang.value: [] for lang in Language}
    for alias, lang in LANGUAGE_ALIASES.items():
        if alias != lang.value:
            aliases[lang.value].append(alias)
    return {
        "languages": [{"language": k, "aliases": v} for k, v in aliases.items()],
        "gradable": [Language.java.value, Language.cpp.value, Language.python.value],
    }


@router.post("/execute", response_model=RunOut)
async def execute_run(payload: RunCreate, chain: ExecutionChain = Depends(get_chain)):
    try:
        res = await chain.execute_best_effort(
            payload.code, payload.language, payload.input, timeout=payload.time_limit
        )
    except SubmissionValidationError as e:
        raise HTTPException(400, str(e))
    except SimulationError as e:
        status = classify_run(ExecutionResult(stderr=str(e))).value
        return RunOut(
            stdout="", stderr=str(e), runtime="0ms", memory="0MB", status=status, error=str(e)
        )

    passed = None
    if payload.expected_output is not None:
        strict = ComparisonOptions.resolve("strict")
        passed = normalize_output(res.stdout, strict) == normalize_output(
            payload.expected_output, strict
        )
    return RunOut(
        stdout=res.stdout,
        stderr=res.stderr,
        exit_code=res.exit_code,
        runtime=res.runtime,
        memory=res.memory,
        simulated=res.simulated,
        executor=res.executor.value if res.executor else None,
        status=classify_run(res).value,
        passed=passed,
    )


@router.post("", status_code=202)
async def start_run(payload: RunCreate, r=Depends(get_queue)):
    lang = parse_language(payload.language)
    if lang is None:
        raise HTTPException(400, f"Unsupported language: {payload.language}")
    session_id = await create_session(
        r, SessionKind.run, lang.value, payload.model_dump(exclude={"language"})
    )
    return {"session_id": session_id}


@router.get("/{session_id}", response_model=SessionOut)
async def get_run(session_id: str, r=Depends(get_queue)):
    snapshot = await get_session(r, session_id)
    if not snapshot:
        raise HTTPException(404, "session not found")
    return SessionOut.model_validate(snapshot)
