"""
LLM-powered demo data generator for the Therapy Office Allocator.
STRATEGY: one batched request per category (offices, clinicians, requests) to stay under RPM limits.
Strong schema prompts + robust parsing + per-item pydantic validation.
"""

import os
import json
import logging
import re
import google.generativeai as genai
from typing import List, Tuple, Dict, Any, Type, Optional
from datetime import date, datetime, time
from pydantic import ValidationError, BaseModel

from models import Office, Clinician, AssignmentRule, ClientPreference, SchedulingRequest
from scheduler.timeutils import clinic_timezone

logger = logging.getLogger(__name__)

MODEL_NAME = "gemini-2.5-flash-preview-09-2025"

# Keys an LLM tends to wrap its array in
_WRAPPER_KEYS = ["offices", "clinicians", "rules", "clients", "requests", "result"]


class DataGenerator:
    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.environ.get("GOOGLE_API_KEY")
        if not self.api_key:
            raise ValueError("GOOGLE_API_KEY not found. Please set it in environment.")

        genai.configure(api_key=self.api_key)
        self.model = genai.GenerativeModel(MODEL_NAME)
        self.total_cost = 0.0

    def _estimate_cost(self, prompt_tokens: int, response_tokens: int) -> float:
        return (prompt_tokens * 0.075 + response_tokens * 0.30) / 1_000_000

    def _robust_parse_json(self, raw_text: str) -> List[Any]:
        """
        Handles Markdown fences and shape normalization.
        Always returns a list (possibly empty).
        """
        if not raw_text: return []

        # 1. Clean Markdown Code Blocks
        clean_text = re.sub(r"```json\s*|\s*```", "", raw_text).strip()

        try:
            data = json.loads(clean_text)
        except json.JSONDecodeError:
            # Fallback: Try to regex extract the main list
            match = re.search(r'(\[.*\])', clean_text, re.DOTALL)
            if not match:
                return []
            try:
                data = json.loads(match.group(1))
            except json.JSONDecodeError:
                return []

        # 2. Normalize Data Shape
        if isinstance(data, list): return data
        if isinstance(data, dict):
            for key in _WRAPPER_KEYS:
                if key in data and isinstance(data[key], list):
                    return data[key]
            return [data]
        return []

    def _fetch_big_batch(self, prompt: str, model_class: Type[BaseModel]) -> Tuple[List[Any], float]:
        """
        Executes a generation request and validates every item against model_class.
        Invalid items are dropped with a warning; a failed call yields an empty batch.
        """
        try:
            generation_config = genai.GenerationConfig(
                response_mime_type="application/json",
                max_output_tokens=16000,
                temperature=0.7
            )
            response = self.model.generate_content(prompt, generation_config=generation_config)
        except Exception as e:
            logger.error(f"Batch generation failed for {model_class.__name__}: {e}")
            return [], 0.0

        cost = 0.0
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            cost = self._estimate_cost(usage.prompt_token_count, usage.candidates_token_count)
        self.total_cost += cost

        valid_items = []
        for i, item in enumerate(self._robust_parse_json(response.text)):
            if not isinstance(item, dict):
                logger.warning(f"Skipping non-object item {i} in {model_class.__name__} batch")
                continue
            try:
                valid_items.append(model_class(**item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid item {i} in batch: {e.json()}")

        logger.info(f"Generated {len(valid_items)} {model_class.__name__} records")
        return valid_items, cost

    def generate_catalog(self, office_count: int = 8, clinician_count: int = 5) -> Tuple[Dict[str, List], float]:
        """Offices, clinicians, assignment rules and client preferences (4 API calls)."""
        step_cost = 0.0
        logger.info(f"🚀 Generating catalog: {office_count} offices, {clinician_count} clinicians")

        # 1. Clinicians first, so offices can reference their ids
        prompt_clin = f"""
        Generate {clinician_count} therapists working at a small outpatient therapy practice.
        OUTPUT: JSON Array.
        STRICT SCHEMA RULES:
        - "clinician_id": STRING, "C1", "C2", ... in order.
        - "role": one of ["owner", "admin", "clinician", "intern"].
        - "age_range_min" / "age_range_max": integers 0-120, min <= max.
        - "preferred_offices": list of office ids shaped like "A-a", "B-1" (uppercase floor letter, dash, lowercase unit).
        FIELDS: clinician_id, name, email, role, age_range_min, age_range_max, specialties (list of strings), preferred_offices.
        """
        clinicians, c1 = self._fetch_big_batch(prompt_clin, Clinician)
        step_cost += c1
        clinician_ids = json.dumps([c.clinician_id for c in clinicians])

        # 2. Offices
        prompt_off = f"""
        Generate {office_count} therapy offices across two floors.
        OUTPUT: JSON Array.
        STRICT SCHEMA RULES:
        - "office_id": STRING shaped like "A-a", "A-b" (upstairs) or "B-1", "B-2" (downstairs). Include "B-1".
        - "floor": "upstairs" for A-*, "downstairs" for B-*.
        - "is_accessible": true ONLY for downstairs offices.
        - "size": one of ["small", "medium", "large"].
        - "special_features": subset of ["group", "natural_light", "sound_dampening", "play_therapy", "window"]. At least one office MUST include "group".
        - "primary_clinician": one of {clinician_ids} or null. Each clinician is primary in at most one office.
        - "alternative_clinicians": list drawn from {clinician_ids}.
        FIELDS: office_id, name, floor, in_service (bool), is_accessible, size, age_groups (list), special_features, primary_clinician, alternative_clinicians, is_flex_space (bool).
        """
        offices, c2 = self._fetch_big_batch(prompt_off, Office)
        step_cost += c2
        office_ids = json.dumps([o.office_id for o in offices])

        # 3. Rules
        prompt_rules = f"""
        Generate 5 office assignment rules for this practice.
        OUTPUT: JSON Array.
        STRICT SCHEMA RULES:
        - "rule_type": one of ["accessibility", "age_group", "session_type", "fixed", "room_consistency", "special_features"].
        - "condition": for age_group use comparisons joined by "&&" (e.g. ">5 && <=12"); for session_type use a session name ("group", "family", "in-person", "telehealth").
        - "office_ids": list drawn from {office_ids}.
        - "override_level": one of ["hard", "soft", "none"].
        - "priority": integer 1-100.
        FIELDS: priority, rule_name, rule_type, condition, office_ids, override_level, active (bool).
        """
        rules, c3 = self._fetch_big_batch(prompt_rules, AssignmentRule)
        step_cost += c3

        # 4. Client preferences
        prompt_pref = f"""
        Generate 6 client accessibility profiles.
        OUTPUT: JSON Array.
        STRICT SCHEMA RULES:
        - "client_id": STRING "CL-1001", "CL-1002", ... in order.
        - "room_consistency": integer 1-5.
        - "mobility_needs": mostly empty lists; at most two clients get ["wheelchair_access"].
        - "sensory_preferences": subset of ["light_sensitive", "natural_light", "sound_sensitive"].
        - "assigned_office": one of {office_ids} or null.
        FIELDS: client_id, name, mobility_needs, sensory_preferences, physical_needs, room_consistency, assigned_office.
        """
        preferences, c4 = self._fetch_big_batch(prompt_pref, ClientPreference)
        step_cost += c4

        return {
            "offices": offices,
            "clinicians": clinicians,
            "rules": rules,
            "client_preferences": preferences
        }, step_cost

    def generate_requests(
        self,
        clinicians: List[Clinician],
        client_ids: List[str],
        count: int = 20,
        day: Optional[date] = None
    ) -> Tuple[List[SchedulingRequest], float]:
        """
        Session requests for one clinic day. The model returns local wall-clock
        times ("HH:MM"); they are anchored to 'day' in the clinic time zone here.
        """
        if day is None: day = date.today()

        prompt = f"""
        Generate {count} therapy session requests for a single clinic day between 08:00 and 18:00.
        OUTPUT: JSON Array.
        STRICT SCHEMA RULES:
        - "clinician_id": one of {json.dumps([c.clinician_id for c in clinicians])}.
        - "client_id": one of {json.dumps(client_ids)}.
        - "local_time": "HH:MM" on the hour or half hour.
        - "duration_minutes": one of [45, 50, 60, 90].
        - "session_type": one of ["in-person", "telehealth", "group", "family"]. Mostly "in-person".
        - "client_age": integer 4-80.
        - "requirements": {{ "accessibility": bool, "special_features": [] }}
        FIELDS: client_id, clinician_id, local_time, duration_minutes, session_type, client_age, requirements.
        """

        raw, cost = self._fetch_big_batch(prompt, _RawRequest)
        tz = clinic_timezone()
        requests = []
        for item in raw:
            try:
                hour, minute = (int(part) for part in item.local_time.split(":")[:2])
                start = tz.localize(datetime.combine(day, time(hour, minute)))
                requests.append(SchedulingRequest(
                    start_time=start,
                    **item.model_dump(exclude={"local_time"})
                ))
            except (ValueError, ValidationError) as e:
                logger.warning(f"Dropping request with bad time {item.local_time!r}: {e}")

        requests.sort(key=lambda r: r.start)
        logger.info(f"✅ Generated {len(requests)} requests for {day.isoformat()}")
        return requests, cost


class _RawRequest(BaseModel):
    """Request as the LLM returns it, before anchoring to a date."""
    client_id: str
    clinician_id: str
    local_time: str
    duration_minutes: int = 60
    session_type: str = "in-person"
    client_age: Optional[int] = None
    requirements: Optional[Dict[str, Any]] = None
