"""Reading sign-in sheet photos: vision model, QR codes and normalization."""
