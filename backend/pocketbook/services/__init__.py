"""
Business logic layer: the session authenticator, the image payload
strategies and the interactor that sequences them.
"""
