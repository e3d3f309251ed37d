"""CareConnect API - care provider marketplace backend"""
