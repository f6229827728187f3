#!/usr/bin/env python3
"""
Plate Linkage Backend Server
Uses centralized port configuration from configs.appconfig
"""
from __future__ import annotations

import logging

import uvicorn

from configs.appconfig import BACKEND_PORT

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s: %(message)s')
    logging.getLogger(__name__).info(f'Starting plate linkage backend on port {BACKEND_PORT}...')
    uvicorn.run('backend.query_api:app', host='0.0.0.0', port=BACKEND_PORT, reload=True)
