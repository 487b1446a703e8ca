"""
Domain logic for the relay: conversation validation, translation and the
request pipeline. Nothing here imports the web framework.
"""
