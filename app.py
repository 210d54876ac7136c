#!/usr/bin/env python3

import logging

import uvicorn

from backend.app.core.config import settings

if __name__ == '__main__':
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=8000, log_config=None)
