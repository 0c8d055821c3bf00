"""Bridge class attendance from photographed sign-in sheets."""
