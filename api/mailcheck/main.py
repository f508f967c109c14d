import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .routers import health, inspect, tools, verify

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# API metadata for OpenAPI documentation
description = """
## MailCheck API

Email trust checks for pasted or uploaded messages and for single addresses.

### Key Features

* **Inspect:** parses .eml/.msg/.html/plain text, reads SPF/DKIM/DMARC results,
  extracts links and scores brand alignment, lookalike domains, dead link
  domains and spam language into a verdict with reasons and tips
* **Verify:** format check, MX/A records, domain blocklist (DBL), registration
  date (RDAP, then WHOIS) and optional mailbox classification by an external
  provider, cached per address
* **Privacy-First:** no SMTP probing; addresses are never sent mail
* **Degrades gracefully:** every external lookup is time-bounded and falls
  back to a neutral value

### Quick Start

1. **Health Check:** `GET /health`
2. **Inspect a message:** `POST /email/inspect`
3. **Verify an address:** `GET /email/verify?email=someone@example.org`

### Documentation

* **Interactive API Docs:** [/docs](/docs) (Swagger UI)
* **Alternative Docs:** [/redoc](/redoc) (ReDoc)
"""

app = FastAPI(
    title="MailCheck API",
    description=description,
    version="0.1.0",
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "health",
            "description": "Service health and provider configuration",
        },
        {
            "name": "email",
            "description": "Message inspection and address verification",
        },
        {
            "name": "tools",
            "description": "Outbound reachability probe",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(inspect.router, prefix="/email", tags=["email"])
app.include_router(verify.router, prefix="/email", tags=["email"])
app.include_router(tools.router, prefix="/tools", tags=["tools"])
