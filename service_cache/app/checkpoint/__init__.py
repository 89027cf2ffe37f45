"""Process checkpoint trigger and snapshot providers."""
