"""Web store client: transport, configuration and response handling."""
