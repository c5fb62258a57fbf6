"""Remote access: HTTP client, remote URLs, credentials, cancellation."""
