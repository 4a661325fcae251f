"""
modguide: retrieval core of the Discord moderator knowledge base.

Loads the guide, penalty rules, commands and procedures, answers keyword
searches, and runs retrieval augmented chat for moderators.
"""
