import uvicorn

from craps_api.core.config import settings

uvicorn.run("craps_api.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
