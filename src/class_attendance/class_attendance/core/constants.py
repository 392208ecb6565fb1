"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

RATE_DECIMALS = 2

EVENT_EXCHANGE = "school-management.exchange"
RECORD_MARKED_ROUTING_KEY = "attendance.marked"
SESSION_CREATED_ROUTING_KEY = "attendance.session.created"
SESSION_DELEGATED_ROUTING_KEY = "attendance.session.delegated"
SESSION_COLLECTED_ROUTING_KEY = "attendance.session.collected"
SESSION_APPROVED_ROUTING_KEY = "attendance.session.approved"
SESSION_REJECTED_ROUTING_KEY = "attendance.session.rejected"
SESSION_RESUBMITTED_ROUTING_KEY = "attendance.session.resubmitted"
