"""Knowledge base responder"""
