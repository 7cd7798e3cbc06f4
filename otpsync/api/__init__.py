"""HTTP bridge between the hosted web app and the shell."""
