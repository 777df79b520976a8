"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, mutation intents, Outcome)
- gateway.py: typed façade over the row store and the image bucket
- task_list.py: in-memory task collection + filtered view
- change_feed.py: realtime subscription that triggers full refreshes
- attachments.py: signed image URLs and image upload/removal steps
- mutations.py: create/edit/status/delete sequencing and outcome merging
- session.py: owns all of the above for one open view
"""
