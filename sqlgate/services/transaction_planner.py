from sqlgate.schemas.execution import StatementAnalysis


class TransactionPlanner:
    """Decides whether a script gets wrapped in an explicit transaction."""

    def needs_transaction(self, analysis: StatementAnalysis) -> bool:
        """
        Wrap only multi-statement scripts that do not open their own transaction.

        Single statements rely on the database's implicit atomicity; some of them
        (CREATE INDEX CONCURRENTLY, VACUUM) are not allowed inside a transaction
        block at all. Self-wrapped scripts must not be nested.
        """
        return analysis.statement_count > 1 and not analysis.is_already_wrapped
