from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pathlib import Path
import json
import os

app = FastAPI(title="Mock Record Store", version="1.0.0")
# Support both local development and Docker
DATA_DIR = Path("/record_stub") if os.path.exists("/record_stub") else Path(__file__).resolve().parents[2] / "record_stub"


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/records")
def get_records(business_id: str):
    file = DATA_DIR / f"records_{business_id}.json"
    if not file.exists():
        raise HTTPException(status_code=404, detail="business not found")
    return JSONResponse(content=json.loads(file.read_text()))
