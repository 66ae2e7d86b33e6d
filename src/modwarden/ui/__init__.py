"""Embed builders for command replies, audit log posts and DMs."""
