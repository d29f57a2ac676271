import logging
import os

from fastapi import FastAPI
from routers import booking_requests, bookings, resources, slots
from schedgrid.db import init_db

app = FastAPI(title="Flight Schedule Grid API", version="0.1.0")

app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
app.include_router(resources.router, prefix="/resources", tags=["resources"])
app.include_router(booking_requests.router, prefix="/requests", tags=["requests"])
app.include_router(slots.router, prefix="/slots", tags=["slots"])

@app.on_event("startup")
def on_startup():
    if os.getenv("SKIP_DB_INIT") == "1":
        return
    init_db()

@app.get("/")
def root():
    return {"ok": True, "service": "schedgrid"}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="127.0.0.1", port=8000)
