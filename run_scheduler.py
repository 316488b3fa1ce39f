"""
Main Execution Script for the Therapy Office Allocator.
Loads (or generates) a demo catalog, schedules one clinic day through the
SchedulingService, prints the morning report and exports everything as JSON.
"""

import os
import sys
import logging
from datetime import date
import json

# Add current directory to path so imports work
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from generators.data_factory import DataGenerator
from models import Office, Clinician, AssignmentRule, ClientPreference, SchedulingRequest
from scheduler.report import DailyReport
from scheduler.service import SchedulingService
from scheduler.timeutils import local_date
from scheduler.stores import (
    InMemoryOfficeStore,
    InMemoryBookingStore,
    InMemoryAuditSink,
    LoggingNotificationSink
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("Main")

# --- CONFIGURATION ---
CACHE_FILENAME = os.environ.get("OFFICE_DEMO_CACHE", "debug_data.json")
EXPORT_FILENAME = os.environ.get("OFFICE_DEMO_EXPORT", "schedule_export.json")
USE_CACHE = os.environ.get("OFFICE_DEMO_USE_CACHE", "true").lower() == "true"
API_KEY = os.environ.get("GOOGLE_API_KEY")
# ---------------------

_CACHE_MODELS = {
    "offices": Office,
    "clinicians": Clinician,
    "rules": AssignmentRule,
    "client_preferences": ClientPreference,
    "requests": SchedulingRequest,
}


def save_debug_data(data: dict, filename: str):
    """Save generated data so we don't re-query the LLM every time."""
    serializable = {key: [item.model_dump(mode='json') for item in val] for key, val in data.items()}
    with open(filename, 'w') as f:
        json.dump(serializable, f, indent=2)
    logger.info(f"💾 Saved debug data to {filename}")


def load_cached_data(filename: str):
    """Load JSON data and re-hydrate the pydantic models. Returns None if unusable."""
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        logger.warning(f"⚠️ Cache file {filename} not found or invalid. Falling back to Generator.")
        return None

    logger.info(f"📂 Loading cached data from {filename}...")
    loaded = {key: [model(**item) for item in data.get(key, [])] for key, model in _CACHE_MODELS.items()}
    logger.info(f"✅ Cache Loaded: {len(loaded['offices'])} offices, {len(loaded['requests'])} requests.")
    return loaded


def generate_data(day: date):
    generator = DataGenerator(api_key=API_KEY)
    logger.info("--- Phase 1: Generative AI Data Fetch ---")

    catalog, cost_catalog = generator.generate_catalog()
    client_ids = [p.client_id for p in catalog["client_preferences"]] or ["CL-1001", "CL-1002", "CL-1003"]
    requests, cost_requests = generator.generate_requests(catalog["clinicians"], client_ids, count=20, day=day)

    logger.info(f"💸 Total Estimated LLM Cost: ${cost_catalog + cost_requests:.4f}")
    return {**catalog, "requests": requests}


def export_schedule(service_data: dict, filename: str):
    logger.info(f"💾 Exporting schedule to {filename}...")
    with open(filename, 'w') as f:
        json.dump(service_data, f, indent=2, default=str)
    logger.info("✅ Schedule exported.")


def main():
    if not API_KEY and not USE_CACHE:
        logger.error("❌ GOOGLE_API_KEY not found. Please set it via 'export GOOGLE_API_KEY=...'")
        return

    logger.info("🚀 Starting Therapy Office Allocator demo...")
    day = date.today()

    # --- PHASE 1: DATA ACQUISITION (Cache vs. GenAI) ---
    data = load_cached_data(CACHE_FILENAME) if USE_CACHE else None
    if not data:
        if not API_KEY:
            logger.error("❌ No cache and no GOOGLE_API_KEY. Exiting.")
            return
        data = generate_data(day)
        save_debug_data(data, CACHE_FILENAME)

    if not data["offices"] or not data["requests"]:
        logger.error("❌ No data available. Exiting.")
        return

    # Cached requests may be from another day; the report covers their day
    day = local_date(data["requests"][0].start)

    # --- PHASE 2: SCHEDULING ---
    logger.info("--- Phase 2: Office Assignment ---")
    office_store = InMemoryOfficeStore(data["offices"], data["clinicians"], data["rules"], data["client_preferences"])
    booking_store = InMemoryBookingStore()
    audit = InMemoryAuditSink()
    service = SchedulingService(office_store, booking_store, audit, notifier=LoggingNotificationSink(logging.DEBUG))

    failures = []
    for i, request in enumerate(data["requests"]):
        result, record = service.schedule_appointment(request, appointment_id=f"APT-{i + 1:04d}")
        if record is None:
            failures.append({"request": request.model_dump(mode='json'), "error": result.error,
                             "conflicts": [c.resolution.reason for c in result.conflicts]})

    # --- PHASE 3: REPORTING ---
    summary = service.run_daily_summary(day)
    report = DailyReport.from_summary(summary)

    print("\n" + "=" * 50)
    print(report.subject)
    print("=" * 50)
    print(report.text)

    if failures:
        print(f"\n🔍 UNSCHEDULED REQUESTS ({len(failures)})")
        for fail in failures[:20]:
            req = fail["request"]
            print(f"❌ {req['client_id']} with {req['clinician_id']} at {req['start_time']}")
            print(f"   Reason: {fail['error'] or '; '.join(fail['conflicts'])}")

    # --- PHASE 4: EXPORT ---
    export_schedule({
        "date": day.isoformat(),
        "appointments": [a.model_dump(mode='json') for a in booking_store.all()],
        "summary": summary.model_dump(mode='json'),
        "failures": failures,
        "audit": [e.model_dump(mode='json') for e in audit.events],
    }, EXPORT_FILENAME)

    print("\n✅ Demo Complete.")


if __name__ == "__main__":
    main()
