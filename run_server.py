#!/usr/bin/env python3
"""
Storefront Catalog Backend Startup Script
This script starts the FastAPI server with all services.
"""

import uvicorn
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("Starting Storefront Catalog Backend...")
    logger.info("Available endpoints:")
    logger.info("  - Health Check: GET /health")
    logger.info("  - Admin Products: GET/POST /api/admin/products, GET/PUT/DELETE /api/admin/products/{id}")
    logger.info("  - Bulk Operations: POST /api/admin/products/bulk, POST /api/admin/products/bulk-delete")
    logger.info("  - Product Search: GET /api/business-owner/products/search")
    logger.info("  - Adoption: POST /api/business-owner/products/{id}/adopt")
    logger.info("  - Adopted Inventory: GET /api/business-owner/products/adopted, PUT/DELETE .../adopted/{id}")
    logger.info("  - API Docs: http://localhost:8000/docs")

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
