"""
Services layer - Business logic goes here.
Keep services focused on specific domains (intake or escalation, not both).

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Storage is reached only through report_store
- Escalation is a status assignment, never a counter
"""
