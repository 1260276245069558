"""
Roofing Sales Dashboard API

Multi-tenant backend for a roofing sales organization. Leads live in each
company's Twenty CRM workspace; this service proxies CRM reads and writes,
mirrors leads into PostgreSQL, and runs a delta sync in the background.

MODULAR ARCHITECTURE:
- app_init.py: Application factory (config, logging, security, database, scheduler)
- app/api/: HTTP route handlers (Flask Blueprints)
- services/: Repositories, Twenty CRM client, delta sync, scheduler
- database/: SQLAlchemy models and engine management
- health_checks.py: /api/health, /api/ready, /api/metrics, /api/ping
"""
import os

from app_init import create_app

app = create_app()


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
