from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from config import get_settings
from scheduler import SchedulerManager

app = FastAPI(title="Budget Reconciler")

scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


@app.get("/", response_class=PlainTextResponse)
@app.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "OK"


def main():
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host="0.0.0.0", port=settings.health_port, reload=False)


if __name__ == "__main__":
    main()
