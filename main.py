import os
import io
import re
import csv
import math
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

import qrcode
from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from database import get_db, ensure_indexes, create_document, get_documents, serialize, to_object_id
from schemas import Form as FormSchema, FormUpdate, FormStatus, Submission as SubmissionSchema, SubmissionRequest
from validation import validate_submission

logger = logging.getLogger(__name__)

# --- Config ---
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
MAX_PAGE_SIZE = 100


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_database = app.dependency_overrides.get(get_db, get_db)
    ensure_indexes(get_database())
    yield


app = FastAPI(title="Form Builder API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Something went wrong!"})


# --- Helpers ---

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_form(db: Database, form_id: str) -> Dict[str, Any]:
    oid = to_object_id(form_id)
    doc = db["form"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=404, detail="Form not found")
    return doc


def page_info(total: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "total": total,
    }


def form_summary(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Form listing entry: styling is left out of the form and its fields."""
    item = serialize(doc)
    item.pop("styling", None)
    item["fields"] = [
        {k: v for k, v in f.items() if k != "styling"}
        for f in item.get("fields", [])
    ]
    return item


def csv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(map(str, value))
    return str(value)


def export_filename(title: str) -> str:
    safe = re.sub(r"[^A-Za-z0-9 _.-]", "_", title).strip() or "form"
    return f"{safe}_submissions.csv"


# --- Routes ---
@app.get("/api/health")
def health():
    return {"status": "OK", "message": "Form Builder API is running"}


# Forms

@app.get("/api/forms")
def list_forms(
    status: Optional[FormStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Database = Depends(get_db),
):
    filter_dict: Dict[str, Any] = {}
    if status:
        filter_dict["status"] = status.value
    if search:
        pattern = re.escape(search)
        filter_dict["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    forms = get_documents(
        db, "form", filter_dict,
        sort=[("updatedAt", DESCENDING)],
        skip=(page - 1) * limit,
        limit=limit,
    )
    total = db["form"].count_documents(filter_dict)
    return {"forms": [form_summary(f) for f in forms], **page_info(total, page, limit)}


@app.get("/api/forms/{form_id}")
def get_form(form_id: str, db: Database = Depends(get_db)):
    return serialize(find_form(db, form_id))


@app.post("/api/forms", status_code=201)
def create_form(payload: FormSchema, db: Database = Depends(get_db)):
    now = utcnow()
    form_doc = payload.model_copy(update={"createdAt": now, "updatedAt": now, "submissionsCount": 0})
    form_id = create_document(db, "form", form_doc)
    logger.info("Created form %s (%s)", form_id, payload.status)
    return serialize(find_form(db, form_id))


@app.put("/api/forms/{form_id}")
def update_form(form_id: str, payload: FormUpdate, db: Database = Depends(get_db)):
    oid = to_object_id(form_id)
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k in ("description", "createdBy")
    }
    changes["updatedAt"] = utcnow()

    doc = None
    if oid:
        doc = db["form"].find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
    if not doc:
        raise HTTPException(status_code=404, detail="Form not found")
    if "status" in changes:
        logger.info("Form %s is now %s", form_id, changes["status"])
    return serialize(doc)


@app.delete("/api/forms/{form_id}")
def delete_form(form_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(form_id)
    doc = db["form"].find_one_and_delete({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=404, detail="Form not found")

    # Delete all submissions for this form
    removed = db["submission"].delete_many({"formId": str(oid)}).deleted_count
    logger.info("Deleted form %s and %d submissions", form_id, removed)
    return {"message": "Form deleted successfully"}


@app.post("/api/forms/{form_id}/duplicate", status_code=201)
def duplicate_form(form_id: str, db: Database = Depends(get_db)):
    original = find_form(db, form_id)
    now = utcnow()
    copy = {k: v for k, v in original.items() if k != "_id"}
    copy.update({
        "title": f"{original['title']} (Copy)",
        "status": FormStatus.draft.value,
        "submissionsCount": 0,
        "createdAt": now,
        "updatedAt": now,
    })
    new_id = create_document(db, "form", copy)
    return serialize(find_form(db, new_id))


@app.get("/api/forms/{form_id}/analytics")
def form_analytics(form_id: str, db: Database = Depends(get_db)):
    form_doc = find_form(db, form_id)
    subs = get_documents(db, "submission", {"formId": str(form_doc["_id"])}, sort=[("submittedAt", ASCENDING)])

    by_date: Dict[str, int] = {}
    for s in subs:
        day = s["submittedAt"].date().isoformat()
        by_date[day] = by_date.get(day, 0) + 1

    total = len(subs)
    return {
        "totalSubmissions": total,
        "submissionsByDate": by_date,
        "averagePerDay": total / max(len(by_date), 1),
        "lastSubmission": subs[-1]["submittedAt"] if subs else None,
    }


@app.get("/api/forms/{form_id}/qr")
def form_qr(form_id: str, db: Database = Depends(get_db)):
    form_doc = find_form(db, form_id)
    url = f"{PUBLIC_BASE_URL.rstrip('/')}/form/{form_doc['_id']}"
    img = qrcode.make(url)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")


# Submissions

@app.get("/api/submissions/form/{form_id}")
def list_submissions(
    form_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    sortBy: str = "submittedAt",
    sortOrder: str = Query("desc", pattern="^(asc|desc)$"),
    db: Database = Depends(get_db),
):
    oid = to_object_id(form_id)
    form_doc = db["form"].find_one({"_id": oid}, {"title": 1}) if oid else None
    form_ref = {"_id": str(oid), "title": form_doc.get("title")} if form_doc else None

    filter_dict = {"formId": form_id}
    subs = get_documents(
        db, "submission", filter_dict,
        sort=[(sortBy, DESCENDING if sortOrder == "desc" else ASCENDING)],
        skip=(page - 1) * limit,
        limit=limit,
    )
    total = db["submission"].count_documents(filter_dict)

    result: List[Dict[str, Any]] = []
    for s in subs:
        item = serialize(s)
        item["form"] = form_ref
        result.append(item)
    return {"submissions": result, **page_info(total, page, limit)}


@app.post("/api/submissions/{form_id}", status_code=201)
def submit_form(form_id: str, payload: SubmissionRequest, request: Request, db: Database = Depends(get_db)):
    form_doc = find_form(db, form_id)
    form = FormSchema.model_validate(form_doc)

    if form.status != FormStatus.published:
        raise HTTPException(status_code=400, detail="Form is not published")

    result = validate_submission(form, payload.data)
    if not result.is_valid:
        logger.info("Rejected submission for form %s: %s", form_id, sorted(result.errors))
        raise HTTPException(
            status_code=400,
            detail={"message": "Validation failed", **result.to_response()},
        )

    sub = SubmissionSchema(
        formId=str(form_doc["_id"]),
        data=payload.data,
        ipAddress=request.client.host if request.client else None,
        userAgent=request.headers.get("user-agent"),
    )
    sub_id = create_document(db, "submission", sub)

    # Update form submission count
    db["form"].update_one({"_id": form_doc["_id"]}, {"$inc": {"submissionsCount": 1}})
    logger.info("Accepted submission %s for form %s", sub_id, form_id)

    return serialize(db["submission"].find_one({"_id": to_object_id(sub_id)}))


@app.get("/api/submissions/{submission_id}")
def get_submission(submission_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(submission_id)
    doc = db["submission"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=404, detail="Submission not found")

    form_oid = to_object_id(doc.get("formId"))
    form_doc = db["form"].find_one({"_id": form_oid}, {"title": 1, "fields": 1}) if form_oid else None
    item = serialize(doc)
    item["form"] = serialize(form_doc)
    return item


@app.delete("/api/submissions/{submission_id}")
def delete_submission(submission_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(submission_id)
    doc = db["submission"].find_one_and_delete({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=404, detail="Submission not found")

    form_oid = to_object_id(doc.get("formId"))
    if form_oid:
        db["form"].update_one({"_id": form_oid}, {"$inc": {"submissionsCount": -1}})
    return {"message": "Submission deleted successfully"}


@app.get("/api/submissions/form/{form_id}/export")
def export_csv(form_id: str, db: Database = Depends(get_db)):
    form_doc = find_form(db, form_id)
    subs = get_documents(db, "submission", {"formId": str(form_doc["_id"])}, sort=[("submittedAt", DESCENDING)])
    fields = form_doc.get("fields", [])

    def iter_rows():
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL)
        writer.writerow([f.get("label") for f in fields] + ["Submitted At"])
        yield output.getvalue(); output.seek(0); output.truncate(0)
        for s in subs:
            data = s.get("data", {})
            row = [csv_cell(data.get(f.get("id"))) for f in fields]
            row.append(s["submittedAt"].isoformat() if s.get("submittedAt") else "")
            writer.writerow(row)
            yield output.getvalue(); output.seek(0); output.truncate(0)

    filename = export_filename(form_doc.get("title", "form"))
    return StreamingResponse(
        iter_rows(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "5000")))
