from fastapi import FastAPI, HTTPException, Request
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

from services.workflow_normalizer import WorkflowNormalizer, NormalizationError
from services.publish_payload import prepare_workflow_for_publish
from services.task_catalog import list_task_types, TaskCategory
from services.task_names import generate_unique_workflow_name, generate_unique_task_name
from translators.mermaid_translator import (
    MermaidTranslator, DiagramRenderError, DiagramDirection, apply_execution_status
)
from schemas.workflow_definition import (
    EditorNode, LocalWorkflow, WorkflowDefinition, WorkflowExecution, WorkflowTask,
    to_payload, validate_task_tree
)
from utils.json_validation import validate_json_string

# Initialize services
workflow_normalizer = WorkflowNormalizer()
mermaid_translator = MermaidTranslator(max_depth=int(os.getenv("DIAGRAM_MAX_DEPTH", 64)))

# Lifespan event handler
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up Workflow Studio API...")
    yield
    logger.info("Shutting down Workflow Studio API...")

app = FastAPI(
    title="Workflow Studio",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS - comma separated list, local dev servers by default
allowed_origins = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:5174,http://localhost:3000,http://localhost:8000",
    ).split(",")
    if origin.strip()
]

logger.info(f"CORS enabled for origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url}: {exc}")
    return JSONResponse(status_code=422, content={"detail": f"Validation error: {exc.errors()}"})


# ============================================================================
# REQUEST MODELS
# ============================================================================

class NormalizeRequest(BaseModel):
    nodes: List[EditorNode] = Field(default_factory=list)
    fieldCatalog: Optional[List[str]] = None
    workflow: Dict[str, Any] = Field(default_factory=dict)

class DiagramRequest(BaseModel):
    tasks: Optional[List[WorkflowTask]] = None
    workflow: Optional[WorkflowDefinition] = None
    direction: DiagramDirection = DiagramDirection.TD
    showStatus: bool = False
    execution: Optional[WorkflowExecution] = None

class TaskTreeRequest(BaseModel):
    tasks: List[WorkflowTask] = Field(default_factory=list)

class JsonValidationRequest(BaseModel):
    text: str


# ============================================================================
# CATALOG ENDPOINTS
# ============================================================================

@app.get("/health")
async def health():
    return {"status": "ok"}

@app.get("/api/task-types")
async def get_task_types(category: Optional[TaskCategory] = None):
    """List the task types the designer offers"""
    return [info.to_dict() for info in list_task_types(category)]

@app.get("/api/names/workflow")
async def new_workflow_name():
    return {"name": generate_unique_workflow_name()}

@app.get("/api/names/task/{task_type}")
async def new_task_name(task_type: str):
    return {"name": generate_unique_task_name(task_type.upper())}


# ============================================================================
# WORKFLOW ENDPOINTS
# ============================================================================

@app.post("/api/workflows/convert")
async def convert_workflow(workflow: LocalWorkflow):
    """Convert a designer workflow into an engine workflow definition"""
    try:
        logger.info(f"Converting workflow '{workflow.name}' with {len(workflow.nodes)} nodes")
        definition = workflow_normalizer.convert_local_workflow(workflow)
        return to_payload(definition)
    except NormalizationError as e:
        logger.warning(f"Workflow conversion rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error converting workflow: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Workflow conversion failed: {str(e)}")

@app.post("/api/workflows/normalize")
async def normalize_nodes(request: NormalizeRequest):
    """Normalize editor nodes against an optional task field catalog"""
    try:
        normalizer = workflow_normalizer
        if request.fieldCatalog is not None:
            normalizer = WorkflowNormalizer(valid_fields=request.fieldCatalog)
        definition = normalizer.normalize(request.nodes, **request.workflow)
        return to_payload(definition)
    except NormalizationError as e:
        logger.warning(f"Normalization rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error normalizing nodes: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Normalization failed: {str(e)}")

@app.post("/api/workflows/publish-payload")
async def publish_payload(definition: Dict[str, Any]):
    """Build the array-wrapped body for the engine's metadata endpoint"""
    return prepare_workflow_for_publish(definition)

@app.post("/api/workflows/validate")
async def validate_workflow(request: TaskTreeRequest):
    """Report structural problems in a task tree"""
    errors = validate_task_tree(request.tasks)
    return {"valid": not errors, "errors": errors}

@app.post("/api/workflows/diagram")
async def workflow_diagram(request: DiagramRequest):
    """Render a task tree (or a workflow definition) as Mermaid flowchart text"""
    if request.tasks is None and request.workflow is None:
        raise HTTPException(status_code=400, detail="Either 'tasks' or 'workflow' is required")

    source = request.workflow if request.workflow is not None else request.tasks
    try:
        if request.execution is not None:
            source = apply_execution_status(source, request.execution)
        mermaid = mermaid_translator.translate(source, request.direction, request.showStatus)
        return {"mermaid": mermaid}
    except DiagramRenderError as e:
        logger.warning(f"Diagram rendering rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))


# ============================================================================
# EDITOR HELPERS
# ============================================================================

@app.post("/api/json/validate")
async def validate_json(request: JsonValidationRequest):
    return validate_json_string(request.text).to_dict()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
