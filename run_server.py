import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from cvetracker.config import Settings

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

settings = Settings.from_env()
server = uvicorn.Server(uvicorn.Config("cvetracker.main:app", host=settings.host, port=settings.port))
server.run()

# A lifespan failure (e.g. the database is unreachable) stops uvicorn before it binds
if not server.started:
    sys.exit(1)
