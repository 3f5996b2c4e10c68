"""
County Directory Backend: Services Layer
==========================================

Service Inventory:
    - CountyService: county CRUD, pagination, search, uniqueness
    - FileService:   icon upload validation, storage and cleanup
    - field_decoder: decode-or-default for JSON-encoded companies/robots
"""
