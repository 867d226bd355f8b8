"""Resumable rebase/merge workflows."""
