"""Realtime infrastructure (Socket.IO).

One socket server carries both attendance sessions and mission chat rooms;
connection authentication lives in ``auth``, event shapes in ``messages``.
"""
