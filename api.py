from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Optional
import uvicorn
from dataclasses import asdict
from pathlib import Path

from pdf_locator.application.product_locator import ProductLocator
from pdf_locator.application.search_session import (
    SearchSession,
    search_and_wait,
    wait_until_settled,
)
from pdf_locator.config import CORS_ORIGINS, DATA_DIRECTORY
from pdf_locator.domain.errors import DocumentNotFoundError, PageOutOfRangeError
from pdf_locator.domain.match_engine import MatchEngine
from pdf_locator.domain.models import (
    LayoutRect,
    LocationMode,
    Product,
    ProductCoordinates,
    SearchQuery,
    SearchState,
    TextFragment,
)
from pdf_locator.infrastructure.asyncio_scheduler import AsyncioScheduler
from pdf_locator.infrastructure.page_container import InMemoryPageContainer
from pdf_locator.infrastructure.pdf_text_layer import PdfTextLayerLoader
from pdf_locator.infrastructure.subject_table import load_subject_table
from pdf_locator.domain.subject_filter import SubjectFilter
from pdf_locator.logging_config import configure_logging

# ── API Models ───────────────────────────────────────────────────────────────
class RectSchema(BaseModel):
    left: float
    top: float
    width: float
    height: float

class FragmentSchema(BaseModel):
    id: str
    text: str
    rect: Optional[RectSchema] = None
    page_index: int = 0
    is_content: bool = True

class QuerySchema(BaseModel):
    query: str
    isbn: Optional[str] = None
    subject: Optional[str] = None

class SearchRequest(QuerySchema):
    container: RectSchema
    fragments: List[FragmentSchema]

class DocumentSearchRequest(QuerySchema):
    page: int = Field(default=1, ge=1)

class CoordinatesSchema(BaseModel):
    page: int
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None

class ProductSchema(BaseModel):
    id: str
    name: str
    isbn: Optional[str] = None
    subject: Optional[str] = None
    coordinates: Optional[CoordinatesSchema] = None

class LocateRequest(BaseModel):
    product: ProductSchema
    page: int = Field(default=1, ge=1)
    container: RectSchema
    fragments: List[FragmentSchema]

class MatchSchema(BaseModel):
    type: str
    quality: str
    similarity: float
    text: str
    fragment_ids: List[str]
    rect: RectSchema

class SearchStateSchema(BaseModel):
    query: str
    status: str
    current_index: int
    total_matches: int
    matches: List[MatchSchema]

class LocateResponse(BaseModel):
    mode: str
    page: int
    rect: Optional[RectSchema] = None
    is_exact: bool = False
    suggested_page: Optional[int] = None
    search: Optional[SearchStateSchema] = None

# ── App Initialization ───────────────────────────────────────────────────────
configure_logging()

app = FastAPI(
    title="PDF Product Locator API",
    description="Finds where a school-supply product appears on a rendered PDF page.",
    version="1.0.0"
)

# ── CORS Middleware ──────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Subject table is loaded once; sessions are per request
subject_table = load_subject_table()
subject_filter = SubjectFilter(subject_table.subjects)


def _new_session() -> SearchSession:
    return SearchSession(
        scheduler=AsyncioScheduler(),
        match_engine=MatchEngine(subject_filter),
    )

def _to_container(container: RectSchema, fragments: List[FragmentSchema]) -> InMemoryPageContainer:
    return InMemoryPageContainer(
        fragments=[
            TextFragment(
                fragment_id=f.id,
                raw_text=f.text,
                layout_rect=LayoutRect(**f.rect.model_dump()) if f.rect else None,
                page_index=f.page_index,
                is_content=f.is_content,
            )
            for f in fragments
        ],
        bounding_rect=LayoutRect(**container.model_dump()),
    )

def _to_query(request: QuerySchema) -> SearchQuery:
    return SearchQuery(text=request.query, isbn=request.isbn, subject=request.subject)

def _serialize_state(state: SearchState) -> SearchStateSchema:
    """Map the domain state to its JSON shape."""
    return SearchStateSchema(
        query=state.query.text if state.query else "",
        status=state.status.value,
        current_index=state.current_index,
        total_matches=state.total_matches,
        matches=[
            MatchSchema(
                type=m.candidate.match_type.value,
                quality=m.candidate.display_quality,
                similarity=round(float(m.candidate.similarity), 4),
                text=m.candidate.matched_text,
                fragment_ids=[f.fragment_id for f in m.candidate.fragments],
                rect=RectSchema(
                    left=round(m.rect.left, 4),
                    top=round(m.rect.top, 4),
                    width=round(m.rect.width, 4),
                    height=round(m.rect.height, 4),
                ),
            )
            for m in state.matches
        ],
    )

# ── Endpoints ────────────────────────────────────────────────────────────────
@app.get("/status")
def get_status():
    """Returns the loaded subject table version and its subjects."""
    return {
        "status": "ready",
        "subject_table_version": subject_table.version,
        "subjects": subject_filter.subjects,
    }

@app.post("/search", response_model=SearchStateSchema)
async def search(request: SearchRequest):
    """Search fragments posted by the caller's renderer."""
    container = _to_container(request.container, request.fragments)
    state = await search_and_wait(_new_session(), _to_query(request), container)
    return _serialize_state(state)

@app.post("/documents/{filename}/search", response_model=SearchStateSchema)
async def search_document(filename: str, request: DocumentSearchRequest):
    """Search one page of a PDF stored in the data directory."""
    try:
        loader = PdfTextLayerLoader(Path(DATA_DIRECTORY) / filename)
        container = loader.load_page(request.page)
    except DocumentNotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    except PageOutOfRangeError as e:
        raise HTTPException(status_code=422, detail=str(e))

    state = await search_and_wait(_new_session(), _to_query(request), container)
    return _serialize_state(state)

@app.post("/products/locate", response_model=LocateResponse)
async def locate_product(request: LocateRequest):
    """Place a product from recorded coordinates, or fall back to text search."""
    product = Product(
        product_id=request.product.id,
        name=request.product.name,
        isbn=request.product.isbn,
        subject=request.product.subject,
        coordinates=(
            ProductCoordinates(**request.product.coordinates.model_dump())
            if request.product.coordinates else None
        ),
    )
    container = _to_container(request.container, request.fragments)
    session = _new_session()
    locator = ProductLocator(session)

    location = locator.locate(product, request.page, container)
    search_state = None
    if location.mode is LocationMode.TEXT_SEARCH:
        search_state = _serialize_state(await wait_until_settled(session))

    return LocateResponse(
        mode=location.mode.value,
        page=location.page,
        rect=RectSchema(**asdict(location.rect)) if location.rect else None,
        is_exact=location.is_exact,
        suggested_page=location.suggested_page,
        search=search_state,
    )

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
