"""
Support Ticket Module
=====================

Bounded Context for customer support tickets.

Responsibilities:
- Create tickets with an AI-assigned priority and an AI first reply
- Hold the conversation (customer, worker and AI messages)
- Move tickets through Open, In Progress, Resolved, Closed and Re-Opened
- Notify customers by email when a worker resolves their ticket
"""
