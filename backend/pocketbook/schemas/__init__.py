"""
Request/response schemas for the HTTP boundary.

They carry the wire names (user_id, password, ...) and convert to and from
the domain records in `pocketbook.domain`; nothing below the routes sees them.
"""
