"""Realtime core for live sessions.

Connection rooms, the question selection and closing state machines, the
anonymous credential cache and the Socket.IO server that exposes them.
"""
