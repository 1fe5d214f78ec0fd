"""Main FastAPI application"""
from fastapi import FastAPI
from quoteform.middleware.cors import setup_cors
from quoteform.middleware.error_handler import ErrorHandlerMiddleware
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Quote Form API",
    description="Conditional quote form builder: preview, versioning and standalone export",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Setup CORS
setup_cors(app)

# Add error handling middleware
app.add_middleware(ErrorHandlerMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "quoteform-backend"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Quote Form API",
        "version": "1.0.0",
        "docs": "/docs"
    }

# Import and include routers
from quoteform.routers import forms, preview, export

app.include_router(forms.router, prefix="/api/forms", tags=["Forms"])
app.include_router(preview.router, prefix="/api/preview", tags=["Preview"])
app.include_router(export.router, prefix="/api/export", tags=["Export"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
