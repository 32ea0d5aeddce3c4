"""
Core package — shared modules for the grounded search service.
Contains: config settings, errors, key rotation, conversation store,
          Gemini chat, response formatting, search controller, and login.
"""
