"""tmgmt-connect: LangConnector and XTMConnect translation job connectors."""

__version__ = "1.0.0"
