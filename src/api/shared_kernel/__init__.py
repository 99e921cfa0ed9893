"""Shared Kernel module.

Components every bounded context agrees to depend on: currently the
outbox value object, ports, probes and exceptions. Bounded contexts plug
their event types into these ports; the shared kernel never imports a
context or an infrastructure implementation.
"""
