"""Athena query execution.

The Athena API is asynchronous: a statement is started, its execution is
polled until it reaches a terminal state, and on success the result rows are
paged back through GetQueryResults. All wire work is done by boto3.
"""
