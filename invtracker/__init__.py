"""Investment Tracker: fixed-term investment records, API and client."""
