"""Resumable background maintenance tasks."""
