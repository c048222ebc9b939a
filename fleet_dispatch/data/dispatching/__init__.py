"""
Dispatching models package.

Main components:
- Dispatch: one fulfilment record per booking, carrying the lifecycle status
- DispatchStatus: closed set of dispatch statuses
- DispatchHistory: machine-generated timeline of lifecycle changes

Use DispatchContext (business layer) for every mutation.
"""
