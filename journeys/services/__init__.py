"""Journey engine services.

``state_machine`` and ``progress`` are pure; ``departments``, ``cascade``
and ``journeys`` touch the database and are meant to be called inside
the unit of work that ``journeys.transition_checkpoint`` opens.
"""
