"""Auction engine core: time model, state, storage and engine"""
