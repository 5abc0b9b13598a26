"""RentCalc backend-for-frontend."""
