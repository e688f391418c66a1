import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Body
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("ruidai")

from ruidai.core import (
    AVAILABLE_MODELS,
    GEMINI_DEFAULT_MODEL,
    PRESETS,
    ImageSession,
    LocalStore,
    SheetStore,
    build_print_document,
    index_page,
    load_settings,
    result_page,
    run_generation,
    save_settings,
    split_sections,
)

app = FastAPI(title="RUIDAI similar-problem generator")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

DATA_DIR = Path(os.getenv("RUIDAI_DATA_DIR", str(Path(__file__).resolve().parent / "data")))


class AppState:
    """Everything one browser session would hold: images, last reply, local storage."""

    def __init__(self, data_dir: Path):
        self.images = ImageSession()
        self.result = ""
        self.store = LocalStore(Path(data_dir) / "local_storage.json")
        self.sheets = SheetStore(self.store)


state = AppState(DATA_DIR)


class SettingsIn(BaseModel):
    api_key: Optional[str] = None
    model: Optional[str] = None
    student: Optional[str] = None
    instructor: Optional[str] = None


class PasteIn(BaseModel):
    data_url: str


def _result_payload() -> Dict[str, Any]:
    return {"result": state.result, "sections": split_sections(state.result)}


def _images_payload() -> Dict[str, Any]:
    return {"count": len(state.images), "images": state.images.data_urls()}


@app.get("/", response_class=HTMLResponse)
def index():
    return HTMLResponse(index_page())


@app.get("/healthz")
def healthz():
    return {"ok": True}


# ---------------------------
# Settings
# ---------------------------
@app.get("/settings")
def get_settings():
    return load_settings(state.store, default_model=GEMINI_DEFAULT_MODEL)


@app.put("/settings")
def put_settings(body: SettingsIn):
    save_settings(state.store, **body.model_dump())
    return load_settings(state.store, default_model=GEMINI_DEFAULT_MODEL)


@app.get("/models")
def models():
    return AVAILABLE_MODELS


@app.get("/presets")
def presets():
    return PRESETS


# ---------------------------
# Images
# ---------------------------
@app.get("/images")
def list_images():
    return _images_payload()


@app.post("/images")
async def upload_image(file: UploadFile = File(...)):
    content = await file.read()
    try:
        state.images.add(content, file.content_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _images_payload()


@app.post("/images/paste")
def paste_image(body: PasteIn):
    try:
        state.images.add_data_url(body.data_url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _images_payload()


@app.delete("/images/{index}")
def delete_image(index: int):
    try:
        state.images.delete(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _images_payload()


@app.post("/images/{index}/crop")
def crop_image(index: int, box: Dict[str, Any] = Body(...)):
    try:
        state.images.crop(index, box)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _images_payload()


@app.delete("/images")
def clear_images():
    state.images.clear()
    return _images_payload()


# ---------------------------
# Generation
# ---------------------------
@app.post("/generate")
def generate(
    question_count: int = Form(3),
    custom_instructions: str = Form(""),
    model_name: str = Form(""),
    gemini_api_key: str = Form(""),
):
    if len(state.images) == 0:
        raise HTTPException(status_code=400, detail="問題画像がありません。")

    settings = load_settings(state.store, default_model=GEMINI_DEFAULT_MODEL)
    key = gemini_api_key or settings["api_key"] or os.getenv("GEMINI_API_KEY", "") or os.getenv("GOOGLE_API_KEY", "")
    if not key:
        return JSONResponse({"status": "error", "message": "APIキーを入力してください"}, status_code=400)

    try:
        out = run_generation(
            state.images.items(),
            question_count=question_count,
            custom_instructions=custom_instructions,
            model_name=model_name or settings["model"],
            api_key=key,
        )
    except Exception as e:
        logger.exception("Generation failed")
        raise HTTPException(status_code=500, detail=f"生成に失敗しました: {e}")

    state.result = out["result"]
    return {"status": "ok", **out}


@app.get("/result")
def get_result():
    return _result_payload()


@app.get("/result/view", response_class=HTMLResponse)
def view_result():
    return HTMLResponse(result_page(state.result))


# ---------------------------
# Printing
# ---------------------------
def _print_response(result: str, mode: str, student: Optional[str], instructor: Optional[str],
                    date: Optional[str], title: str) -> HTMLResponse:
    if not result:
        raise HTTPException(status_code=404, detail="No generated result to print.")
    try:
        doc = build_print_document(result, mode=mode, student=student or "",
                                   instructor=instructor or "", date=date, title=title)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return HTMLResponse(doc)


@app.get("/print", response_class=HTMLResponse)
def print_sheet(mode: str = "problems", student: Optional[str] = None, instructor: Optional[str] = None,
                date: Optional[str] = None, title: str = "類題プリント"):
    settings = load_settings(state.store)
    return _print_response(
        state.result, mode,
        settings["student"] if student is None else student,
        settings["instructor"] if instructor is None else instructor,
        date, title,
    )


# ---------------------------
# Saved sheets
# ---------------------------
@app.get("/sheets")
def list_sheets():
    return state.sheets.list()


@app.post("/sheets")
def save_sheet(
    title: str = Form("類題プリント"),
    student: Optional[str] = Form(None),
    instructor: Optional[str] = Form(None),
    date: str = Form(""),
):
    if not state.result:
        raise HTTPException(status_code=400, detail="No generated result to save.")
    settings = load_settings(state.store)
    return state.sheets.add(
        title=title,
        student=settings["student"] if student is None else student,
        instructor=settings["instructor"] if instructor is None else instructor,
        date=date,
        result=state.result,
    )


def _get_sheet(sheet_id: int) -> Dict[str, Any]:
    sheet = state.sheets.get(sheet_id)
    if sheet is None:
        raise HTTPException(status_code=404, detail="Sheet not found")
    return sheet


@app.delete("/sheets/{sheet_id}")
def delete_sheet(sheet_id: int):
    if not state.sheets.delete(sheet_id):
        raise HTTPException(status_code=404, detail="Sheet not found")
    return {"ok": True}


@app.post("/sheets/{sheet_id}/load")
def load_sheet(sheet_id: int):
    state.result = _get_sheet(sheet_id).get("result", "")
    return _result_payload()


@app.get("/sheets/{sheet_id}/print", response_class=HTMLResponse)
def print_saved_sheet(sheet_id: int, mode: str = "problems"):
    sheet = _get_sheet(sheet_id)
    return _print_response(sheet.get("result", ""), mode, sheet.get("student"), sheet.get("instructor"),
                           sheet.get("date", ""), sheet.get("title") or "類題プリント")
